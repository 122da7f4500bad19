from urllib.parse import quote_plus

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class KafkaConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="KAFKA_")

    bootstrap_servers: str = "localhost:9092"
    delivery_events_topic: str = "notification.delivery"
    client_id: str = "notification-dispatcher"


class PostgresConfig(BaseSettings):
    """Connection settings for the dispatch result log.

    ``POSTGRES_URL`` overrides the individual parts, which is how local
    runs point the log at a SQLite file instead of a server.
    """

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    url: str | None = None
    host: str = "localhost"
    port: int = 5432
    database: str = "notifications"
    user: str = "postgres"
    password: str = "postgres"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def dsn(self) -> str:
        if self.url:
            return self.url
        return (
            f"postgresql://{quote_plus(self.user)}:{quote_plus(self.password)}"
            f"@{self.host}:{self.port}/{self.database}"
        )
