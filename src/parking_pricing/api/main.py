import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config.settings import Settings, get_settings
from .rules_api import pricing_router, router as rules_router
from .state import AppState, get_state


def setup_logging(settings: Settings):
    """Configure root logging from settings."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


setup_logging(get_settings())

app = FastAPI(
    title="Parking Pricing API",
    description="Price rules and booking price calculation for parking listings",
    version="1.0.0"
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rules_router)
app.include_router(pricing_router)


@app.get("/")
async def root():
    return {"status": "online", "message": "Parking Pricing API Active"}


@app.get("/system/status")
async def get_status(state: AppState = Depends(get_state)):
    settings = state.settings
    compiled = settings.compiled_rules
    return {
        "engine_active": True,
        "rules_loaded": state.rule_store.loaded,
        "rules_count": state.rule_store.rule_count,
        "parkings_count": len(state.catalog),
        "tax_rate": float(state.engine.tax_rate),
        "default_currency": settings.default_currency,
        "rules_last_compile": compiled.stat().st_mtime if compiled.exists() else None,
    }
