"""
Configuration management for GraphWrap
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # GraphQL endpoint
    graphql_path: str = "/graphql"
    graphiql: bool = True
    allow_introspection: bool = True
    max_query_depth: int = 10

    # Query field naming: detail views become `<name>`, list views `all_<name>s`
    list_field_prefix: str = "all_"
    list_field_suffix: str = "s"

    # Routes never considered REST views (prefix match)
    exclude_paths: list[str] = ["/docs", "/redoc", "/openapi.json", "/health"]

    # Delegation to the REST views
    forward_headers: list[str] = ["authorization", "cookie", "accept-language", "x-tenant"]
    internal_base_url: str = "http://graphwrap.internal"
    dispatch_timeout: float = 30.0

    # API Settings (used by `graphwrap serve`)
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = False
    cors_origins: list[str] = ["http://localhost:3000"]

    # Environment
    environment: str = "development"  # 'development', 'staging', 'production'
    debug: bool = True
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "GRAPHWRAP_"
        case_sensitive = False

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")


# Global settings instance
settings = Settings()
