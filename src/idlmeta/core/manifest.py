import tomllib
from dataclasses import dataclass, field
from pathlib import Path

MANIFEST_NAME = "idlmeta.toml"


@dataclass
class ResolverConfig:
    """Include resolution settings."""

    include_dirs: list[Path] = field(default_factory=lambda: [Path(".")])
    max_workers: int = 4


@dataclass
class LoggingConfig:
    """Logging settings applied by the CLI."""

    level: str = "WARNING"
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass
class ProjectManifest:
    """
    Project configuration.

    Example idlmeta.toml:

        [project]
        name = "example"
        sources = ["./idl"]

        [resolver]
        include_dirs = ["./idl", "./third_party"]
        max_workers = 4

        [logging]
        level = "INFO"

    Relative paths are resolved against the manifest's directory.
    """

    name: str = "unnamed"
    root: Path = field(default_factory=Path.cwd)
    sources: list[Path] = field(default_factory=lambda: [Path(".")])
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def discover_sources(self, suffix: str = ".thrift") -> list[Path]:
        """List IDL files under the configured source directories."""
        files: list[Path] = []
        for base in self.sources:
            if base.is_file():
                files.append(base)
            elif base.exists():
                files.extend(base.rglob(f"*{suffix}"))
        return sorted(set(files))


def find_manifest(start: Path) -> Path | None:
    """Walk up from `start` looking for idlmeta.toml."""
    start = start.resolve()
    for directory in [start, *start.parents]:
        candidate = directory / MANIFEST_NAME
        if candidate.is_file():
            return candidate
    return None


def load_manifest(path: Path | None) -> ProjectManifest:
    """
    Load a manifest file.

    Args:
        path: Manifest path; None yields the defaults rooted at the
            current directory

    Returns:
        Parsed ProjectManifest

    Raises:
        FileNotFoundError: If path is given but does not exist
        tomllib.TOMLDecodeError: If the file is not valid TOML
    """
    if path is None:
        return ProjectManifest()

    with path.open("rb") as f:
        data = tomllib.load(f)

    root = path.parent.resolve()

    def _paths(values: list[str], default: list[str]) -> list[Path]:
        return [root / v for v in (values or default)]

    project = data.get("project", {})
    resolver_data = data.get("resolver", {})
    logging_data = data.get("logging", {})

    resolver = ResolverConfig(
        include_dirs=_paths(resolver_data.get("include_dirs", []), ["."]),
        max_workers=int(resolver_data.get("max_workers", 4)),
    )
    if resolver.max_workers < 1:
        raise ValueError(f"resolver.max_workers must be at least 1 in {path}")

    logging_config = LoggingConfig(
        level=str(logging_data.get("level", "WARNING")).upper(),
        format=logging_data.get("format", LoggingConfig.format),
    )

    return ProjectManifest(
        name=project.get("name", "unnamed"),
        root=root,
        sources=_paths(project.get("sources", []), ["."]),
        resolver=resolver,
        logging=logging_config,
    )
