#!/usr/bin/env python3
"""
FastAPI demo application demonstrating betterenv integration.

Values resolve from registered providers first, then the compiled .env
files, then the process environment.

To run this demo:
1. Create a .env file with APP_NAME and PORT
2. Optionally export INFISICAL_CLIENT_ID, INFISICAL_CLIENT_SECRET,
   INFISICAL_PROJECT_ID and INFISICAL_ENVIRONMENT
3. Install dependencies: pip install betterenv uvicorn
4. Run: python demo_fastapi.py
"""

import os
from typing import Dict

from fastapi import FastAPI, Depends

from betterenv import FileProvider, InfisicalProvider, default_env, default_registry
from betterenv.integrations.fastapi import EnvSettings, get_env, require_env

# Register runtime providers, highest priority first
registry = default_registry()
if os.environ.get("INFISICAL_CLIENT_ID"):
    registry.add_provider(InfisicalProvider.from_settings())
if os.path.exists(".env.runtime"):
    registry.add_provider(FileProvider(".env.runtime"))

class AppSettings(EnvSettings):
    """Application settings filled from providers, then the environment."""

    app_name: str = "betterenv demo"
    port: int = 8000
    debug: bool = False

app = FastAPI(
    title="BetterEnv Demo",
    description="Demonstrates betterenv integration with FastAPI",
    version="1.0.0"
)

@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "BetterEnv FastAPI Demo",
        "docs": "/docs",
        "config": "/config",
    }

@app.get("/config")
def get_config(values: Dict[str, str] = Depends(require_env("APP_NAME"))):
    """Values the application cannot run without."""
    return values

@app.get("/providers")
def providers(env = Depends(get_env())):
    """Keys currently served by runtime providers."""
    return {"keys": sorted(env.registry.get_all_from_providers())}

@app.post("/refresh")
def refresh():
    """Drop cached Infisical secrets."""
    provider = registry.get_provider(InfisicalProvider)
    if provider is not None:
        provider.clear_cache()
    return {"refreshed": provider is not None}

if __name__ == "__main__":
    import uvicorn

    settings = AppSettings()
    print(f"Starting {settings.app_name} on port {settings.port}")
    print(f"Compiled variables: {len(default_env().compiled)}")

    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_level="debug" if settings.debug else "info")
