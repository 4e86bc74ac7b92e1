import socket
import uuid

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_env: str = "local"
    app_log_level: str = "INFO"
    # "/api" gives the legacy /api/user/... paths.
    api_prefix: str = ""

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0

    # Redis Streams
    # Operation envelopes go to the request stream; each gateway instance
    # reads its replies from "<redis_stream_replies>:<instance_id>".
    redis_stream_requests: str = "user_operations"
    redis_stream_replies: str = "user_replies"
    # Unique per process unless pinned, so replicas never share a reply stream.
    instance_id: str = Field(default_factory=lambda: f"{socket.gethostname()}-{uuid.uuid4().hex[:8]}")
    # Approximate cap applied when replies are appended.
    redis_reply_stream_maxlen: int = 10000

    # Redis consumer groups
    redis_reply_consumer_group: str = "user_reply_listeners"
    redis_worker_consumer_group: str = "user_workers"
    redis_consumer_name: str = "consumer-1"
    worker_max_concurrency: int = 10

    # RPC bridge
    rpc_timeout_seconds: float = 10.0

    # Loopback echo worker (answers our own requests on the shared transport)
    echo_worker_enabled: bool = False

    # Credentials
    jwt_secret: str = Field(
        default="",
        validation_alias=AliasChoices("JWT_SECRET", "USERSERVICE_JWT_SECRET"),
    )
    jwt_algorithm: str = "HS256"
    jwt_roles_claim: str = "roles"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @property
    def reply_stream(self) -> str:
        return f"{self.redis_stream_replies}:{self.instance_id}"


settings = Settings()
