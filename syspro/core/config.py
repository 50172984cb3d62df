"""
core/config.py
----------------

Client configuration module.

Defines strongly‑typed settings loaded from the environment using
``pydantic-settings``. These settings control the API base URL,
timeouts, network retries and TLS verification for every request made
by :class:`syspro.clients.syspro_client.SysproClient`. The values
provided here are sensible defaults but can be overridden via
environment variables at deployment time.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment variables.

    The settings structure is flat and uses environment variables
    prefixed with ``SYSPRO_``.  For example, to allow two network
    retries you can set ``SYSPRO_MAX_NETWORK_RETRIES=2``.

    See :class:`pydantic_settings.BaseSettings` for details on how
    environment variables are mapped onto fields.
    """

    api_base: str = Field("http://localhost:20000/SYSPROWCFService/Rest", description="Base URL of the SYSPRO e.net REST service.")

    # HTTP client settings
    open_timeout: float = Field(30.0, gt=0, description="Connect timeout in seconds.")
    read_timeout: float = Field(80.0, gt=0, description="Read timeout in seconds.")
    max_network_retries: int = Field(0, ge=0, description="Maximum number of retries on transient network errors.")
    initial_network_retry_delay: float = Field(0.5, ge=0, description="Delay before the first retry, in seconds.")
    max_network_retry_delay: float = Field(2.0, ge=0, description="Upper bound on the delay between retries, in seconds.")

    # Certificates are not verified unless this is switched on.  A warning
    # is logged the first time an unverified connection is opened.
    verify_ssl_certs: bool = Field(False, description="Verify TLS certificates of the SYSPRO host.")

    app_info: Optional[Dict[str, Any]] = Field(None, description="Identity of the application embedding this client.")

    model_config = SettingsConfigDict(env_prefix="SYSPRO_", env_file=None, case_sensitive=False)


@lru_cache()
def get_settings() -> Settings:
    """Return a cached instance of the client settings.

    Using a cache prevents expensive environment parsing on every call.
    Tests that change the environment should call
    ``get_settings.cache_clear()``.
    """
    return Settings()
