"""HTTP + WebSocket boundary around CazinoService."""
