
from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    # Embeddings (OpenAI-compatible API)
    embedding_base_url: str = "https://api.openai.com/v1"
    embedding_api_key: str = ""
    embedding_model: str = "text-embedding-ada-002"
    embedding_dimensions: int = 1536
    embedding_max_batch_size: int = 16
    embedding_retry_attempts: int = 3
    embedding_retry_base_delay: float = 1.0
    embedding_rate_limit_protection: bool = True
    embedding_timeout: float = 10.0

    # Search index: "azure" or "memory"
    search_backend: str = "azure"
    search_service_url: str = "https://localhost.search.windows.net"
    search_api_key: str = ""
    search_index_name: str = "repository-documents-v1"
    search_api_version: str = "2024-07-01"
    search_max_batch_size: int = 100
    search_request_timeout: float = 10.0
    search_detailed_logging: bool = False

    # Indexing
    indexable_file_extensions: list[str] = [
        ".cs", ".js", ".ts", ".py", ".java", ".cpp", ".c", ".go", ".rs",
        ".php", ".rb", ".swift", ".kt", ".scala", ".html", ".css", ".sql",
        ".md", ".txt", ".json", ".xml", ".yml", ".yaml", ".sh", ".ps1",
    ]
    ignored_directories: list[str] = [
        ".git", ".vs", ".vscode", "node_modules", "bin", "obj",
        "packages", ".nuget", "target", "build",
    ]
    max_file_content_length: int = 32768
    max_concurrent_indexing_operations: int = 5
    content_fetch_concurrency: int = 10
    extract_code_symbols: bool = True
    enable_incremental_indexing: bool = True

    # GitHub content provider
    github_api_url: str = "https://api.github.com"
    github_token: str = ""
    github_timeout: float = 10.0

    repositories_path: str = "repositories.json"

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
