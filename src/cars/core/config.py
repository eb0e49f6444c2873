from functools import lru_cache
from urllib.parse import urlparse

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "CARS Control Plane"
    app_env: str = "development"  # development, testing, production
    debug: bool = False
    public_base_url: str = "http://localhost:7080"  # Used to mint signed upload URLs

    # Database
    database_url: str
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_ssl_mode: str = "prefer"  # disable, prefer, require, verify-ca, verify-full

    # Auth
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Upload URL signing
    url_signing_secret: str

    @field_validator("jwt_secret_key", "url_signing_secret")
    @classmethod
    def validate_secret(cls, v: str) -> str:
        if v == "change-this-to-a-secure-random-string":
            raise ValueError(
                "Secrets must be changed from the default value. "
                "Generate one with: openssl rand -hex 32"
            )
        if len(v) < 32:
            raise ValueError("Secrets must be at least 32 characters")
        return v

    @field_validator("public_base_url")
    @classmethod
    def validate_public_base_url(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ValueError(f"PUBLIC_BASE_URL must be an absolute http(s) URL, got '{v}'")
        return v.rstrip("/")

    # Deployment
    project_deployment_dns_name: str = "projects.example.com"
    registry_host: str = "cars-registry:5000"
    artifact_dir: str = "/tmp/cars/artifacts"
    build_dir: str = "/tmp/cars/builds"
    max_artifact_bytes: int = 512 * 1024 * 1024
    image_build_timeout_seconds: int = 1800
    rollout_timeout_seconds: int = 300
    rollout_max_attempts: int = 3
    rollout_retry_backoff_seconds: float = 2.0
    cluster_issuer: str = "letsencrypt-production"
    ingress_class: str = "nginx"
    suspended_ingress_class: str = "cars-suspended"
    helm_binary: str = "helm"
    kubectl_binary: str = "kubectl"
    docker_binary: str = "docker"

    # Network credentials injected into backend workloads
    taal_api_key_main: str = ""
    taal_api_key_test: str = ""

    # Billing (rates are per unit per five-minute interval)
    cpu_rate_per_core_5min: int = 1000
    mem_rate_per_gb_5min: int = 500
    disk_rate_per_gb_5min: int = 100
    net_rate_per_gb_5min: int = 200
    billing_interval_minutes: int = 5
    access_gating_enabled: bool = False
    prometheus_url: str = (
        "http://prometheus-kube-prometheus-stack-prometheus.monitoring.svc.cluster.local:9090"
    )
    prometheus_timeout_seconds: float = 15.0

    # Custom domain verification (DNS-over-HTTPS JSON API)
    dns_resolver_url: str = "https://cloudflare-dns.com/dns-query"

    # Temporal
    temporal_host: str = "localhost:7233"
    temporal_namespace: str = "default"
    temporal_queue_prefix: str = "cars"
    pipeline_timeout_minutes: int = 60
    pipeline_runner: str = "temporal"  # temporal, inline (run in the API process)

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    @field_validator("cors_origins")
    @classmethod
    def validate_cors_origins(cls, v: list[str]) -> list[str]:
        """Reject wildcards since credentials are allowed."""
        for origin in v:
            if origin == "*":
                raise ValueError(
                    "CORS wildcard '*' is not allowed when allow_credentials=True. "
                    "Specify explicit origins instead."
                )
        return v

    # Metrics
    metrics_api_key: str | None = None  # If set, /metrics requires this key

    # Email (Resend)
    resend_api_key: str | None = None  # If not set, emails are logged but not sent
    email_from: str = "noreply@example.com"
    email_send_timeout_seconds: int = 10


@lru_cache
def get_settings() -> Settings:
    return Settings()
