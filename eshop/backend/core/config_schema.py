"""
Configuration Schemas.

Pydantic models describing each YAML file under config/settings/.
AppConfig validates every file against its schema when it loads, so a missing
key, a wrong type or an unknown field fails at startup with a readable message.

One top-level class per file:
    ApplicationSchema  → application.yaml
    DatabaseSchema     → database.yaml
    LoggingSchema      → logging.yaml
    FeaturesSchema     → features.yaml
    SecuritySchema     → security.yaml
    ConcurrencySchema  → concurrency.yaml
    ChannelsSchema     → channels.yaml
"""

from pydantic import BaseModel, ConfigDict, Field


class _StrictBase(BaseModel):
    """Rejects unknown YAML keys."""

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# application.yaml
# =============================================================================


class ServerSchema(_StrictBase):
    host: str
    port: int


class CorsSchema(_StrictBase):
    origins: list[str]


class PaginationSchema(_StrictBase):
    default_limit: int
    max_limit: int


class TimeoutsSchema(_StrictBase):
    database: int
    external_api: int


class CheckoutSchema(_StrictBase):
    vat_rate: float = Field(ge=0, le=1)
    payment_method: str
    assigned_to: str


class TelegramPollSchema(_StrictBase):
    poll_interval_ms: int = Field(gt=0)


class HealthChecksSchema(_StrictBase):
    ready_timeout_seconds: int


class ApplicationSchema(_StrictBase):
    name: str
    version: str
    description: str
    environment: str
    debug: bool
    api_prefix: str
    docs_enabled: bool
    server: ServerSchema
    cors: CorsSchema
    pagination: PaginationSchema
    timeouts: TimeoutsSchema
    checkout: CheckoutSchema
    telegram: TelegramPollSchema
    health_checks: HealthChecksSchema


# =============================================================================
# database.yaml
# =============================================================================


class DatabaseSchema(_StrictBase):
    host: str
    port: int
    name: str
    user: str
    pool_size: int
    max_overflow: int
    pool_timeout: int
    pool_recycle: int
    echo: bool
    echo_pool: bool


# =============================================================================
# logging.yaml
# =============================================================================


class ConsoleHandlerSchema(_StrictBase):
    enabled: bool


class FileHandlerSchema(_StrictBase):
    enabled: bool
    path: str
    max_bytes: int
    backup_count: int


class HandlersSchema(_StrictBase):
    console: ConsoleHandlerSchema
    file: FileHandlerSchema


class LoggingSchema(_StrictBase):
    level: str
    format: str
    handlers: HandlersSchema


# =============================================================================
# features.yaml
# =============================================================================


class FeaturesSchema(_StrictBase):
    admin_auth_enforced: bool
    api_detailed_errors: bool
    api_request_logging: bool
    channel_email_enabled: bool
    channel_telegram_enabled: bool
    channel_messenger_enabled: bool
    flexibee_enabled: bool
    security_startup_checks_enabled: bool
    security_cors_enforce_production: bool


# =============================================================================
# security.yaml
# =============================================================================


class JwtSchema(_StrictBase):
    algorithm: str
    access_token_expire_minutes: int
    audience: str


class PasswordPolicySchema(_StrictBase):
    min_length: int


class TotpSchema(_StrictBase):
    issuer: str
    valid_window: int


class SecretsValidationSchema(_StrictBase):
    jwt_secret_min_length: int


class CorsEnforcementSchema(_StrictBase):
    enforce_in_production: bool
    allow_methods: list[str]
    allow_headers: list[str]


class SecuritySchema(_StrictBase):
    jwt: JwtSchema
    passwords: PasswordPolicySchema
    totp: TotpSchema
    secrets_validation: SecretsValidationSchema
    cors: CorsEnforcementSchema


# =============================================================================
# concurrency.yaml
# =============================================================================


class ThreadPoolSchema(_StrictBase):
    max_workers: int


class SemaphoresSchema(_StrictBase):
    database: int
    telegram: int
    messenger: int
    smtp: int
    flexibee: int


class ShutdownSchema(_StrictBase):
    drain_seconds: int


class ConcurrencySchema(_StrictBase):
    thread_pool: ThreadPoolSchema
    semaphores: SemaphoresSchema
    shutdown: ShutdownSchema


# =============================================================================
# channels.yaml
# =============================================================================


class SmtpSchema(_StrictBase):
    enabled: bool
    host: str
    port: int
    username: str
    sender: str
    use_tls: bool
    timeout_seconds: int


class TelegramChannelSchema(_StrictBase):
    request_timeout_seconds: int
    poll_timeout_seconds: int


class MessengerSchema(_StrictBase):
    graph_api_url: str
    api_version: str
    request_timeout_seconds: int


class FlexibeeSchema(_StrictBase):
    request_timeout_seconds: int
    invoice_text: str


class CircuitBreakerSchema(_StrictBase):
    fail_max: int
    timeout_duration: int


class RetrySchema(_StrictBase):
    max_attempts: int
    backoff_multiplier: int
    backoff_max: int


class ChannelsSchema(_StrictBase):
    smtp: SmtpSchema
    telegram: TelegramChannelSchema
    messenger: MessengerSchema
    flexibee: FlexibeeSchema
    circuit_breaker: CircuitBreakerSchema
    retry: RetrySchema
