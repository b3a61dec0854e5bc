"""
Configuration loaders for taskmgr.

Projects are described by .env files:

    <home>/projects/<name>/project.env
    <home>/projects/<name>/roadmap.db

<home> is $TM_HOME, or ./.tm when unset.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from . import envparse
from .constants import (
    DEFAULT_DB_FILE,
    FALLBACK_PROJECT_CODE,
    PROJECT_CODE_PATTERN,
    PROJECT_NAME_PATTERN,
)

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Project configuration is missing or malformed."""


@dataclass
class ProjectConfig:
    """Project-level configuration from project.env"""
    name: str
    code: str       # Prefix for generated IDs, e.g. "DW" -> DW-track-1
    db_path: Path
    dir: Path


def get_home() -> Path:
    """Root directory holding projects/ and config/."""
    env_home = os.environ.get("TM_HOME")
    if env_home:
        return Path(env_home)
    return Path.cwd() / ".tm"


def get_projects_dir(home: Path) -> Path:
    return home / "projects"


def default_project_code(project_name: str) -> str:
    """Derive a project code from a name: "darwin-flow" -> "DF", "tasks" -> "TA"."""
    parts = [p for p in project_name.replace("_", "-").split("-") if p]
    code = "".join(p[0].upper() for p in parts)

    if len(code) < 2 and project_name:
        code = project_name[:2].upper()

    code = "".join(c for c in code if c.isalnum())
    return code or FALLBACK_PROJECT_CODE


def load_project_config(project_dir: Path) -> ProjectConfig:
    """Load project.env and return ProjectConfig."""
    try:
        env = envparse.load_env(project_dir / "project.env")
    except ValueError as e:
        raise ConfigError(f"Invalid project.env in {project_dir}: {e}") from None

    if "PROJECT_NAME" not in env:
        raise ConfigError(f"PROJECT_NAME missing from {project_dir / 'project.env'}")

    name = env["PROJECT_NAME"]
    code = env.get("PROJECT_CODE") or default_project_code(name)
    if not PROJECT_CODE_PATTERN.match(code):
        logger.warning(f"Invalid PROJECT_CODE '{code}' for {name}, using {FALLBACK_PROJECT_CODE}")
        code = FALLBACK_PROJECT_CODE

    return ProjectConfig(
        name=name,
        code=code,
        db_path=project_dir / env.get("DB_FILE", DEFAULT_DB_FILE),
        dir=project_dir,
    )


def init_project(home: Path, name: str, code: str | None = None) -> ProjectConfig:
    """Create projects/<name>/project.env. Fails if the project already exists."""
    if not PROJECT_NAME_PATTERN.match(name):
        raise ConfigError(f"Invalid project name '{name}': use letters, digits, '-' or '_'")

    code = code or default_project_code(name)
    if not PROJECT_CODE_PATTERN.match(code):
        raise ConfigError(f"Invalid project code '{code}': must be uppercase alphanumeric (e.g. DW, PROD)")

    project_dir = get_projects_dir(home) / name
    if (project_dir / "project.env").exists():
        raise ConfigError(f"Project '{name}' already exists")

    envparse.write_env(project_dir / "project.env", {
        "PROJECT_NAME": name,
        "PROJECT_CODE": code,
        "DB_FILE": DEFAULT_DB_FILE,
    })
    logger.info(f"Initialized project {name} ({code}) at {project_dir}")
    return load_project_config(project_dir)


def list_projects(home: Path) -> list[ProjectConfig]:
    """All projects with a readable project.env, sorted by name."""
    projects_dir = get_projects_dir(home)
    if not projects_dir.exists():
        return []

    projects = []
    for d in sorted(projects_dir.iterdir()):
        if d.is_dir() and (d / "project.env").exists():
            try:
                projects.append(load_project_config(d))
            except ConfigError as e:
                logger.warning(f"Skipping project {d.name}: {e}")
    return projects


def get_current_project(home: Path) -> str | None:
    """Get the current project name from context, or None if not set.

    Auto-clears stale context if the project no longer exists.
    """
    context_file = home / "config" / "current_project"
    if context_file.exists():
        name = context_file.read_text().strip()
        if name:
            if (get_projects_dir(home) / name / "project.env").exists():
                return name
            context_file.unlink()
    return None


def set_current_project(home: Path, name: str) -> None:
    """Set the current project context."""
    config_dir = home / "config"
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "current_project").write_text(name + "\n")


def clear_current_project(home: Path) -> None:
    """Clear the current project context."""
    context_file = home / "config" / "current_project"
    if context_file.exists():
        context_file.unlink()


def resolve_project(home: Path, name: str | None = None) -> ProjectConfig:
    """Pick a project: the named one, else the current context, else the only one configured."""
    name = name or get_current_project(home)
    if name:
        project_dir = get_projects_dir(home) / name
        if not (project_dir / "project.env").exists():
            raise ConfigError(f"Project '{name}' not found. Run 'tm project list' to see projects.")
        return load_project_config(project_dir)

    projects = list_projects(home)
    if len(projects) == 0:
        raise ConfigError("No projects configured. Run 'tm project init <name>' first.")
    if len(projects) > 1:
        names = ", ".join(p.name for p in projects)
        raise ConfigError(f"Multiple projects found ({names}). Use --project or 'tm project use <name>'.")
    return projects[0]
