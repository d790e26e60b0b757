"""FastAPI backend: HTTP routes over CazinoService plus a WebSocket notification feed."""

from __future__ import annotations

import asyncio
import json
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from cazino import __version__
from cazino.api.notify import Broadcaster, Subscription
from cazino.api.schemas import (
    BetApproved,
    BetCreated,
    BetResolved,
    BetResponse,
    CreateBetRequest,
    CreateMarketRequest,
    CreateMarketResponse,
    DeviceMarketInfo,
    DeviceMarketsResponse,
    ErrorResponse,
    HealthResponse,
    JoinMarketRequest,
    JoinMarketResponse,
    LeaderboardResponse,
    MarketDeleted,
    MarketStatusChanged,
    MarketUpdate,
    PendingBetsResponse,
    Ping,
    PlaceWagerRequest,
    Pong,
    ProbabilityChartResponse,
    ResolveBetRequest,
    ResolveBetResponse,
    RevealResponse,
    Subscribe,
    UserJoined,
    WagerPlaced,
    WagerResponse,
    WsError,
)
from cazino.config import Settings, get_settings
from cazino.engine.visibility import NOBODY, to_view
from cazino.errors import CazinoError, ConstraintError, InternalError, NotFoundError
from cazino.models import BetView, Market
from cazino.service import CazinoService, CreateMarketParams
from cazino.storage import open_storage

log = structlog.get_logger(__name__)

_ERROR_STATUS = {NotFoundError: 404, ConstraintError: 400, InternalError: 500}
_ERRORS = {404: {"model": ErrorResponse}, 400: {"model": ErrorResponse}}

# Set by run_api() so the lifespan uses the CLI-resolved settings.
_settings: Settings | None = None


def _error_json(code: str, message: str, status_code: int = 404) -> JSONResponse:
    """Return consistent error JSON: { detail, code }."""
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "code": code},
    )


def get_service(request: Request) -> CazinoService:
    return request.app.state.service


def get_broadcaster(request: Request) -> Broadcaster:
    return request.app.state.broadcaster


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def create_app(
    service: CazinoService | None = None, profile: str | None = None, settings: Settings | None = None
) -> FastAPI:
    """Build the app. Without a service, the lifespan opens storage from config."""

    def resolve_settings() -> Settings:
        if settings is not None:
            return settings
        if _settings is not None and profile is None:
            return _settings
        return get_settings(profile)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        storage = None
        app.state.settings = resolved = resolve_settings()
        if getattr(app.state, "service", None) is None:
            storage = open_storage(resolved)
            app.state.service = CazinoService(storage, invite_code_attempts=resolved.invite_code_attempts)
            log.info("api_storage_opened", backend=storage.backend_id)
        yield
        if storage is not None:
            storage.close()

    app = FastAPI(title="Cazino API", version=__version__, lifespan=lifespan)
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    app.state.service = service
    app.state.settings = resolve_settings()
    app.state.broadcaster = Broadcaster()

    @app.exception_handler(CazinoError)
    async def cazino_error_handler(request: Request, exc: CazinoError) -> JSONResponse:
        status = next((s for cls, s in _ERROR_STATUS.items() if isinstance(exc, cls)), 500)
        if status >= 500:
            log.error("api_error", path=request.url.path, error=str(exc))
        else:
            log.info("api_rejected", path=request.url.path, code=exc.code, error=str(exc))
        return _error_json(exc.code, str(exc), status)

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok")

    # ===== Markets =====

    @app.post("/markets", response_model=CreateMarketResponse, responses=_ERRORS)
    def create_market(
        req: CreateMarketRequest,
        service: CazinoService = Depends(get_service),
        broadcaster: Broadcaster = Depends(get_broadcaster),
        settings: Settings = Depends(get_app_settings),
    ) -> CreateMarketResponse:
        market, user = service.create_market(
            CreateMarketParams(
                name=req.name,
                admin_device_id=req.device_id or str(uuid.uuid4()),
                admin_name=req.admin_name,
                admin_avatar=req.avatar,
                starting_balance=(
                    req.starting_balance if req.starting_balance is not None else settings.default_starting_balance
                ),
                duration_hours=req.duration_hours if req.duration_hours is not None else settings.default_duration_hours,
                custom_invite_code=req.invite_code,
            )
        )
        broadcaster.publish(MarketUpdate(market_id=market.id, market=market))
        return CreateMarketResponse(market=market, user=user, invite_code=market.invite_code)

    @app.post("/markets/join/{invite_code}", response_model=JoinMarketResponse, responses=_ERRORS)
    def join_market(
        invite_code: str,
        req: JoinMarketRequest,
        service: CazinoService = Depends(get_service),
        broadcaster: Broadcaster = Depends(get_broadcaster),
    ) -> JoinMarketResponse:
        market, user = service.join_market(
            invite_code.strip().upper(), req.device_id or str(uuid.uuid4()), req.display_name, req.avatar
        )
        broadcaster.publish(UserJoined(market_id=market.id, user_id=user.id, display_name=user.display_name))
        return JoinMarketResponse(market=market, user=user)

    @app.get("/markets/{market_id}", response_model=Market, responses=_ERRORS)
    def get_market(market_id: str, service: CazinoService = Depends(get_service)) -> Market:
        return service.get_market(market_id)

    @app.get("/markets/{market_id}/leaderboard", response_model=LeaderboardResponse, responses=_ERRORS)
    def leaderboard(market_id: str, service: CazinoService = Depends(get_service)) -> LeaderboardResponse:
        return LeaderboardResponse(users=service.get_leaderboard(market_id))

    def _status_route(action: str):
        def handler(
            market_id: str,
            admin_id: str,
            service: CazinoService = Depends(get_service),
            broadcaster: Broadcaster = Depends(get_broadcaster),
        ) -> Market:
            market = getattr(service, f"{action}_market")(market_id, admin_id)
            broadcaster.publish(MarketStatusChanged(market_id=market.id, status=market.status))
            return market

        handler.__name__ = f"{action}_market"
        return handler

    for action in ("open", "close", "resolve"):
        app.post(f"/markets/{{market_id}}/{action}/{{admin_id}}", response_model=Market, responses=_ERRORS)(
            _status_route(action)
        )

    @app.delete("/markets/{market_id}/{admin_id}", status_code=204, responses=_ERRORS)
    def delete_market(
        market_id: str,
        admin_id: str,
        service: CazinoService = Depends(get_service),
        broadcaster: Broadcaster = Depends(get_broadcaster),
    ) -> None:
        service.delete_market(market_id, admin_id)
        broadcaster.publish(MarketDeleted(market_id=market_id))

    @app.get("/devices/{device_id}/markets", response_model=DeviceMarketsResponse)
    def device_markets(device_id: str, service: CazinoService = Depends(get_service)) -> DeviceMarketsResponse:
        pairs = service.get_markets_by_device_id(device_id)
        return DeviceMarketsResponse(markets=[DeviceMarketInfo(market=m, user=u) for m, u in pairs])

    # ===== Bets =====

    @app.get("/markets/{market_id}/bets/pending", response_model=PendingBetsResponse, responses=_ERRORS)
    def pending_bets(market_id: str, service: CazinoService = Depends(get_service)) -> PendingBetsResponse:
        return PendingBetsResponse(bets=service.get_pending_bets(market_id))

    @app.get("/markets/{market_id}/bets/{user_id}", response_model=list[BetView], responses=_ERRORS)
    def list_bets(market_id: str, user_id: str, service: CazinoService = Depends(get_service)) -> list[BetView]:
        """All bets in the market as user_id may see them."""
        return service.get_bets(market_id, user_id)

    @app.post("/markets/{market_id}/bets/{creator_id}", response_model=BetResponse, responses=_ERRORS)
    def create_bet(
        market_id: str,
        creator_id: str,
        req: CreateBetRequest,
        service: CazinoService = Depends(get_service),
        broadcaster: Broadcaster = Depends(get_broadcaster),
    ) -> BetResponse:
        bet = service.create_bet(
            market_id,
            creator_id,
            req.subject_user_id,
            req.description,
            req.initial_odds,
            req.opening_wager,
            req.hide_from_subject,
        )
        broadcaster.publish(
            BetCreated(
                market_id=bet.market_id,
                bet_id=bet.id,
                description=None if bet.hide_from_subject else bet.description,
            )
        )
        return BetResponse(bet=to_view(bet, creator_id))

    @app.post("/bets/{bet_id}/approve/{admin_id}", response_model=BetResponse, responses=_ERRORS)
    def approve_bet(
        bet_id: str,
        admin_id: str,
        service: CazinoService = Depends(get_service),
        broadcaster: Broadcaster = Depends(get_broadcaster),
    ) -> BetResponse:
        bet = service.approve_bet(bet_id, admin_id)
        broadcaster.publish(BetApproved(market_id=bet.market_id, bet_id=bet.id))
        return BetResponse(bet=to_view(bet, admin_id))

    @app.post("/bets/{bet_id}/wager/{user_id}", response_model=WagerResponse, responses=_ERRORS)
    def place_wager(
        bet_id: str,
        user_id: str,
        req: PlaceWagerRequest,
        service: CazinoService = Depends(get_service),
        broadcaster: Broadcaster = Depends(get_broadcaster),
    ) -> WagerResponse:
        wager = service.place_wager(bet_id, user_id, req.side, req.amount)
        market_id = service.get_bet(bet_id).market_id
        broadcaster.publish(
            WagerPlaced(
                market_id=market_id,
                bet_id=bet_id,
                user_id=user_id,
                side=wager.side,
                amount=wager.amount,
                new_yes_pool=wager.yes_pool_after,
                new_no_pool=wager.no_pool_after,
                new_probability=wager.probability_after,
            )
        )
        return WagerResponse(
            bet_id=bet_id,
            user_id=user_id,
            side=wager.side,
            amount=wager.amount,
            new_yes_pool=wager.yes_pool_after,
            new_no_pool=wager.no_pool_after,
            new_probability=wager.probability_after,
        )

    @app.get("/bets/{bet_id}/chart", response_model=ProbabilityChartResponse, responses=_ERRORS)
    def probability_chart(bet_id: str, service: CazinoService = Depends(get_service)) -> ProbabilityChartResponse:
        return ProbabilityChartResponse(points=service.get_probability_chart(bet_id))

    @app.post("/bets/{bet_id}/resolve/{admin_id}", response_model=ResolveBetResponse, responses=_ERRORS)
    def resolve_bet(
        bet_id: str,
        admin_id: str,
        req: ResolveBetRequest,
        service: CazinoService = Depends(get_service),
        broadcaster: Broadcaster = Depends(get_broadcaster),
    ) -> ResolveBetResponse:
        payouts = service.resolve_bet(bet_id, admin_id, req.outcome)
        bet = service.get_bet(bet_id)
        broadcaster.publish(
            BetResolved(market_id=bet.market_id, bet_id=bet.id, outcome=req.outcome, status=bet.status, payouts=payouts)
        )
        return ResolveBetResponse(bet=to_view(bet, NOBODY), payouts=payouts)

    @app.get("/users/{user_id}/reveal", response_model=RevealResponse, responses=_ERRORS)
    def reveal(user_id: str, service: CazinoService = Depends(get_service)) -> RevealResponse:
        return RevealResponse(bets=service.get_reveal(user_id))

    # ===== WebSocket =====

    @app.websocket("/ws")
    async def ws_feed(websocket: WebSocket) -> None:
        await websocket.accept()
        broadcaster: Broadcaster = websocket.app.state.broadcaster
        sub = broadcaster.subscribe()
        log.info("ws_connected", clients=broadcaster.subscriber_count)
        sender = asyncio.create_task(_pump(websocket, sub))
        try:
            while True:
                _handle_client_message(await websocket.receive_text(), sub)
        except WebSocketDisconnect:
            pass
        finally:
            sender.cancel()
            broadcaster.unsubscribe(sub)
            log.info("ws_closed", clients=broadcaster.subscriber_count)
            try:
                await sender
            except asyncio.CancelledError:
                # only the pump was cancelled unless this handler is too
                if asyncio.current_task().cancelling():
                    raise
            except Exception as e:
                log.warning("ws_send_failed", error=str(e))


async def _pump(websocket: WebSocket, sub: Subscription) -> None:
    while True:
        payload = await sub.queue.get()
        await websocket.send_json(payload)


def _handle_client_message(text: str, sub: Subscription) -> None:
    """ping -> pong; subscribe narrows the feed to the given markets."""
    try:
        data = json.loads(text)
        kind = data.get("type") if isinstance(data, dict) else None
        if kind == "ping":
            Ping.model_validate(data)
            sub.offer(Pong().model_dump(mode="json"))
        elif kind == "subscribe":
            msg = Subscribe.model_validate(data)
            sub.markets.add(msg.market_id)
            log.info("ws_subscribed", market_id=msg.market_id)
        else:
            sub.offer(WsError(message=f"Unknown message type: {kind}").model_dump(mode="json"))
    except (ValueError, ValidationError) as e:
        log.warning("ws_bad_message", error=str(e))
        sub.offer(WsError(message="Malformed message").model_dump(mode="json"))


app = create_app()


def run_api(host: str = "127.0.0.1", port: int = 3000, settings: Settings | None = None) -> None:
    global _settings
    _settings = settings
    import uvicorn

    uvicorn.run("cazino.api.main:app", host=host, port=port, reload=False)
