# backend/opstracker/config.py
from __future__ import annotations
import os


def _split_env_list(value: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    if not value:
        return default
    parts = tuple(p.strip() for p in value.split(",") if p.strip())
    return parts or default


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/opstracker.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///opstracker.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Stock locations registry. The first entry is the primary warehouse
    # unless PRIMARY_LOCATION says otherwise.
    INVENTORY_LOCATIONS = _split_env_list(
        os.environ.get("INVENTORY_LOCATIONS"),
        ("Almacén", "Barra 1", "Barra 2", "Barra 3", "Barra 4", "Restaurante"),
    )
    PRIMARY_LOCATION = os.environ.get("PRIMARY_LOCATION") or INVENTORY_LOCATIONS[0]

    # Consumption reports hide items whose |consumption| is at or below this
    CONSUMPTION_DISPLAY_THRESHOLD = float(os.environ.get("CONSUMPTION_DISPLAY_THRESHOLD", "0.001"))
