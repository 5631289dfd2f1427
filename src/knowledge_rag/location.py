"""Knowledge base location selection.

A project that carries its own ``.claude/<app_name>/knowledge`` folder gets a
project-local database under ``knowledge/.index/``; everything else falls back to a
global knowledge base in the user's home directory.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

DEFAULT_APP_NAME = "knowledge-rag"
DB_FILENAME = "knowledge.db"

LocationKind = Literal["project", "global", "configured"]


@dataclass(frozen=True)
class KnowledgeLocation:
    """Resolved knowledge base location.

    Attributes:
        kind: "project", "global", or "configured" (explicit db_path)
        knowledge_dir: Directory holding the source documents
        db_path: SQLite database file
    """

    kind: LocationKind
    knowledge_dir: Path
    db_path: Path


def project_knowledge_dir(cwd: Path, app_name: str = DEFAULT_APP_NAME) -> Path:
    return cwd / ".claude" / app_name / "knowledge"


def resolve_location(
    cwd: Path | str | None = None,
    app_name: str = DEFAULT_APP_NAME,
    home: Path | str | None = None,
    db_path: Path | str | None = None,
) -> KnowledgeLocation:
    """Pick the knowledge base for a working directory.

    Directories needed for the database are created.

    Args:
        cwd: Project directory (defaults to the current directory)
        app_name: Folder name under ``.claude``
        home: Home directory for the global fallback (defaults to ``Path.home()``)
        db_path: Explicit database path; bypasses detection when given

    Returns:
        The resolved KnowledgeLocation
    """
    cwd = Path(cwd) if cwd is not None else Path.cwd()

    if db_path is not None:
        configured = Path(db_path).expanduser()
        configured.parent.mkdir(parents=True, exist_ok=True)
        return KnowledgeLocation(
            kind="configured", knowledge_dir=configured.parent, db_path=configured
        )

    project_dir = project_knowledge_dir(cwd, app_name)
    if project_dir.is_dir():
        index_dir = project_dir / ".index"
        index_dir.mkdir(exist_ok=True)
        return KnowledgeLocation(
            kind="project", knowledge_dir=project_dir, db_path=index_dir / DB_FILENAME
        )

    home_dir = Path(home) if home is not None else Path.home()
    global_dir = home_dir / ".claude" / app_name / "knowledge"
    global_dir.mkdir(parents=True, exist_ok=True)
    return KnowledgeLocation(
        kind="global", knowledge_dir=global_dir, db_path=global_dir / DB_FILENAME
    )
