"""Template file naming and discovery.

Template files are named ``<stem>.<ext>.tt``; ``<ext>`` is the extension of
the file they generate (``versions.rs.tt`` generates a Rust source file).
"""

import os
from pathlib import Path

from .models import TemplateInfo

TEMPLATE_SUFFIX = ".tt"

# Environment variable naming an extra template directory
TTGEN_TEMPLATES_DIR_ENV = "TTGEN_TEMPLATES_DIR"

# Human-readable names for file extensions
FILE_TYPES = {
    "md": "Markdown",
    "py": "Python",
    "yml": "YAML",
    "json": "JSON",
    "toml": "TOML",
    "h": "C Header",
    "c": "C Source",
    "rs": "Rust",
    "txt": "Text",
    "html": "HTML",
}


def file_type(extension: str) -> str:
    """Get human-readable file type from extension."""
    return FILE_TYPES.get(extension, "Unknown")


def parse_template_name(filename: str) -> str | None:
    """Extract the output extension from a template filename.

    Examples:
    - versions.rs.tt -> "rs"
    - notes.tt -> "txt"
    - versions.rs -> None (not a template)
    """
    if not filename.endswith(TEMPLATE_SUFFIX):
        return None
    base = filename[: -len(TEMPLATE_SUFFIX)]
    parts = base.rsplit(".", 1)
    if len(parts) == 2 and parts[0] and parts[1]:
        return parts[1]
    return "txt"


def template_search_paths(extra_dir: Path | str | None = None) -> list[Path]:
    """Directories searched for templates, in priority order.

    The current directory comes first, then ``extra_dir`` or, if that is not
    given, the directory named by the ``TTGEN_TEMPLATES_DIR`` variable.
    """
    paths = [Path.cwd()]
    if extra_dir:
        paths.append(Path(extra_dir))
    elif TTGEN_TEMPLATES_DIR_ENV in os.environ:
        paths.append(Path(os.environ[TTGEN_TEMPLATES_DIR_ENV]))
    return paths


def find_template(name: Path | str, search_paths: list[Path]) -> Path:
    """Resolve a template path, trying each search path for relative names.

    Raises:
        FileNotFoundError: If no matching file exists.
    """
    candidate = Path(name)
    if candidate.is_absolute():
        if candidate.is_file():
            return candidate
        raise FileNotFoundError(f"Template {candidate} does not exist")

    for base in search_paths:
        path = base / candidate
        if path.is_file():
            return path.resolve()
    searched = ", ".join(p.as_posix() for p in search_paths)
    raise FileNotFoundError(f"Template {name} not found (searched: {searched})")


def discover_templates(templates_path: Path) -> dict[str, TemplateInfo]:
    """Discover all templates in a directory.

    Args:
        templates_path: Path to the templates directory.

    Returns:
        Dict mapping template filename to its info, sorted by filename.
    """
    templates: dict[str, TemplateInfo] = {}

    if not templates_path.exists():
        return templates

    for path in sorted(templates_path.iterdir()):
        ext = parse_template_name(path.name)
        if ext is None or not path.is_file():
            continue
        templates[path.name] = TemplateInfo(
            filename=path.name, output_ext=ext, path=str(path)
        )

    return templates
