"""Environment-based configuration for the maintenance desk client."""

from pydantic_settings import BaseSettings

# Shown in the assignment picker when the directory service is unreachable.
DEFAULT_FALLBACK_PEOPLE = [
    "Juan Carlos Gonzalez",
    "Eugenio Suarez",
    "Elpidio Davila",
    "Roger Membreno",
    "Lino Munoz",
    "Ariel Caballero",
    "Ramon Aguilera",
    "Raul Garcia",
    "Carlos Pena",
]


class Settings(BaseSettings):
    """Maintenance desk client configuration.

    All settings can be overridden via environment variables with
    MAINTDESK_ prefix. For example:
        MAINTDESK_API_BASE=https://maintenance.example.com
        MAINTDESK_ACCESS_TOKEN=eyJhbGciOi...
    """

    # Backend API
    api_base: str = "http://localhost:7071"
    http_timeout_seconds: float = 10.0

    # Authentication
    access_token: str | None = None
    maintenance_api_scopes: list[str] = ["api://maintenance-api/access_as_user"]
    notification_hub_scopes: list[str] = ["api://notification-hub/register_device"]
    token_refresh_skew_seconds: int = 300  # 5 minutes

    # Listing defaults
    ticket_list_limit: int = 20
    dashboard_list_limit: int = 100

    # Reference data
    persons_department: str = "MAINTENANCE"
    persons_limit: int = 50
    categories_limit: int = 200
    locations_limit: int = 50
    fallback_people: list[str] = DEFAULT_FALLBACK_PEOPLE

    log_level: str = "WARNING"

    model_config = {"env_prefix": "MAINTDESK_"}


settings = Settings()
