"""Configuration loading for the upload pipeline."""

from __future__ import annotations

import json
import os
from pathlib import Path

import keyring

from radicacion.models import UploadConfig

SERVICE_NAME = "radicacion-portal"
KEY_NAME = "access_token"

TOKEN_ENV_VAR = "RADICACION_ACCESS_TOKEN"
BASE_URL_ENV_VAR = "RADICACION_BASE_URL"


def get_access_token() -> str:
    """Get the portal access token: system keyring first, then env var fallback.

    Returns:
        Bearer token string.

    Raises:
        RuntimeError: If no token found anywhere, with actionable instructions.
    """
    token = keyring.get_password(SERVICE_NAME, KEY_NAME)
    if token:
        return token

    token = os.environ.get(TOKEN_ENV_VAR)
    if token:
        return token

    raise RuntimeError(
        "Portal access token not found.\n"
        "Set it with: radicacion config set-token YOUR_TOKEN\n"
        f"Or: export {TOKEN_ENV_VAR}=your-token"
    )


def load_upload_config(config_path: Path | None = None) -> UploadConfig:
    """Load upload pipeline configuration from JSON, falling back to defaults.

    Reads from ``config/radicacion_config.json`` when *config_path* is
    ``None``. If the file does not exist, returns an ``UploadConfig`` with
    defaults. Unknown keys are ignored.

    The access token comes from the JSON only if present there; otherwise
    from the system keyring (service: ``radicacion-portal``), then the
    ``RADICACION_ACCESS_TOKEN`` environment variable. It stays ``None`` when
    none is configured; callers that need it use :func:`get_access_token`.

    Args:
        config_path: Optional explicit path to the JSON config.

    Returns:
        UploadConfig populated from file + keyring/env overrides.
    """
    if config_path is None:
        config_path = Path("config/radicacion_config.json")

    data: dict = {}
    if config_path.exists():
        with open(config_path) as f:
            data = json.load(f)

    field_names = {f.name for f in UploadConfig.__dataclass_fields__.values()}
    kwargs = {k: v for k, v in data.items() if k in field_names}

    if "base_url" not in kwargs and os.environ.get(BASE_URL_ENV_VAR):
        kwargs["base_url"] = os.environ[BASE_URL_ENV_VAR]

    config = UploadConfig(**kwargs)

    if config.access_token is None:
        config.access_token = keyring.get_password(
            SERVICE_NAME, KEY_NAME
        ) or os.environ.get(TOKEN_ENV_VAR)

    return config
