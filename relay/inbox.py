"""Brief inbox: markdown briefs with YAML frontmatter, processed then archived."""

import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import frontmatter

BRIEF_MODES = ("generate", "consensus", "route")


@dataclass
class Brief:
    path: Path
    query: str
    mode: str = "route"
    context: str = ""
    system: str = ""
    providers: list[str] | None = None   # consensus panel; None means configured default
    model: str | None = None


def ensure_dirs(inbox_dir: Path, archive_dir: Path) -> None:
    """Create inbox and archive directories if they don't exist."""
    inbox_dir.mkdir(parents=True, exist_ok=True)
    archive_dir.mkdir(parents=True, exist_ok=True)


def scan_inbox(inbox_dir: Path) -> list[Path]:
    """Return all .md files in inbox_dir, oldest first."""
    files = list(inbox_dir.glob("*.md"))
    return sorted(files, key=lambda p: p.stat().st_mtime)


def load_brief(file_path: Path) -> Brief:
    """Parse a brief. Frontmatter keys: mode, context, system, providers, model.

    Raises:
        ValueError: On an unknown mode or an empty body.
    """
    post = frontmatter.load(str(file_path))
    query = post.content.strip()
    if not query:
        raise ValueError(f"Brief {file_path.name} has no body")

    meta = dict(post.metadata)
    mode = str(meta.get("mode", "route")).strip().lower()
    if mode not in BRIEF_MODES:
        raise ValueError(f"Brief {file_path.name}: unknown mode '{mode}' (expected one of {', '.join(BRIEF_MODES)})")

    providers_raw = meta.get("providers")
    providers: list[str] | None = None
    if isinstance(providers_raw, str):
        providers = [p.strip() for p in providers_raw.split(",") if p.strip()]
    elif isinstance(providers_raw, list):
        providers = [str(p).strip() for p in providers_raw]

    return Brief(
        path=file_path,
        query=query,
        mode=mode,
        context=str(meta.get("context", "")),
        system=str(meta.get("system", "")),
        providers=providers,
        model=str(meta["model"]) if meta.get("model") else None,
    )


def archive_file(file_path: Path, archive_dir: Path, *, failed: bool = False) -> Path:
    """Move file to archive_dir with a timestamp prefix ("FAILED_" first when failed)."""
    timestamp = datetime.now().strftime("%Y-%m-%dT%H%M")
    prefix = "FAILED_" if failed else ""
    dest = archive_dir / f"{prefix}{timestamp}_{file_path.name}"
    shutil.move(str(file_path), str(dest))
    return dest
