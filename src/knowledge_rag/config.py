"""Configuration management for the knowledge base using Hydra.

All configuration is loaded from YAML files in conf/knowledge_rag/.
This module provides typed config objects and validation.
"""

from pathlib import Path

from hydra import compose, initialize_config_dir
from omegaconf import DictConfig, OmegaConf
from pydantic import BaseModel, Field

from knowledge_rag.chunking import ChunkingConfig
from knowledge_rag.embedding import EmbeddingConfig
from knowledge_rag.extraction import SUPPORTED_EXTENSIONS
from knowledge_rag.location import DEFAULT_APP_NAME


class StoreConfig(BaseModel):
    """Vector store configuration.

    Attributes:
        app_name: Folder name under ``.claude`` used for location detection
        db_path: Explicit database path; skips project/global detection when set
    """

    app_name: str = Field(default=DEFAULT_APP_NAME, min_length=1)
    db_path: str | None = None


class IndexingConfig(BaseModel):
    """Indexing run configuration.

    Attributes:
        source_dir: Directory to index; defaults to the resolved knowledge folder
        extensions: File suffixes eligible for indexing
    """

    source_dir: str | None = None
    extensions: list[str] = Field(default_factory=lambda: sorted(SUPPORTED_EXTENSIONS))


class KnowledgeConfig(BaseModel):
    """Top-level configuration for the knowledge base.

    Attributes:
        chunking: Text chunking configuration
        embedding: Embedding provider configuration
        store: Vector store configuration
        indexing: Indexing run configuration
    """

    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    indexing: IndexingConfig = Field(default_factory=IndexingConfig)


def default_config_dir() -> Path:
    """Return conf/knowledge_rag/ relative to the repo root."""
    repo_root = Path(__file__).parent.parent.parent
    return repo_root / "conf" / "knowledge_rag"


def load_config(
    config_name: str = "default",
    config_path: str | Path | None = None,
    overrides: list[str] | None = None,
) -> KnowledgeConfig:
    """Load knowledge base configuration from Hydra YAML files.

    Args:
        config_name: Name of config file (without .yaml extension)
        config_path: Path to config directory (defaults to conf/knowledge_rag/)
        overrides: List of config overrides (e.g., ["chunking.chunk_size=800"])

    Returns:
        Validated configuration object

    Example:
        >>> config = load_config("default")
        >>> config.embedding.model
        'nomic-embed-text'

        >>> config = load_config("default", overrides=["chunking.overlap=50"])
        >>> config.chunking.overlap
        50
    """
    if config_path is None:
        config_path = default_config_dir()

    config_path = Path(config_path).resolve()

    if not config_path.exists():
        raise FileNotFoundError(
            f"Config directory not found: {config_path}\n" f"Create it with: mkdir -p {config_path}"
        )

    with initialize_config_dir(
        config_dir=str(config_path), version_base=None, job_name="knowledge_rag"
    ):
        cfg: DictConfig = compose(config_name=config_name, overrides=overrides or [])

    config_dict = OmegaConf.to_container(cfg, resolve=True)
    return KnowledgeConfig(**config_dict)  # type: ignore


def create_default_config() -> dict[str, dict[str, object]]:
    """Create a default configuration dictionary for bootstrapping.

    Returns:
        Dictionary suitable for writing to YAML

    Example:
        >>> import yaml
        >>> config = create_default_config()
        >>> with open("conf/knowledge_rag/default.yaml", "w") as f:
        ...     yaml.dump(config, f)
    """
    return {
        "chunking": {
            "chunk_size": 500,
            "overlap": 100,
            "min_chunk_chars": 50,
        },
        "embedding": {
            "provider": "ollama",
            "model": "${oc.env:OLLAMA_EMBED_MODEL,nomic-embed-text}",
            "base_url": "${oc.env:OLLAMA_BASE_URL,'http://localhost:11434'}",
            "dimensions": None,
            "timeout_seconds": 60.0,
            "probe_timeout_seconds": 2.0,
            "max_concurrency": 4,
        },
        "store": {
            "app_name": DEFAULT_APP_NAME,
            "db_path": None,
        },
        "indexing": {
            "source_dir": None,
            "extensions": sorted(SUPPORTED_EXTENSIONS),
        },
    }
