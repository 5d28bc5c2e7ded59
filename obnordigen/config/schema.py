"""Configuration schema using Pydantic."""

from pydantic import BaseModel, Field

from obnordigen.api.client import API_BASE_URL
from obnordigen.auth.constants import CALLBACK_HOST, CALLBACK_PORT, DEFAULT_USER_LANGUAGE, redirect_url


class NordigenConfig(BaseModel):
    """API secrets issued in the Nordigen / GoCardless dashboard."""
    secret_id: str = ""
    secret_key: str = ""


class ApiConfig(BaseModel):
    base_url: str = API_BASE_URL
    timeout: float = 30.0


class CallbackConfig(BaseModel):
    """Local listener for the bank's consent redirect."""
    host: str = CALLBACK_HOST
    port: int = Field(default=CALLBACK_PORT, ge=0, le=65535)
    timeout: float | None = Field(default=300.0, ge=0)  # seconds; 0 or null waits forever


class Config(BaseModel):
    """Root configuration for obnordigen."""
    nordigen: NordigenConfig = Field(default_factory=NordigenConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    callback: CallbackConfig = Field(default_factory=CallbackConfig)
    user_language: str = DEFAULT_USER_LANGUAGE
    transaction_days: int = Field(default=30, ge=1)

    @property
    def callback_address(self) -> tuple[str, int]:
        return self.callback.host, self.callback.port

    @property
    def redirect_url(self) -> str:
        """Redirect registered with each requisition; must match the listener."""
        return redirect_url(self.callback.host, self.callback.port)

    @property
    def callback_timeout(self) -> float | None:
        return self.callback.timeout or None
