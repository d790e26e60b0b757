"""Market/bet orchestration."""

from cazino.service.orchestrator import CazinoService, CreateMarketParams

__all__ = ["CazinoService", "CreateMarketParams"]
