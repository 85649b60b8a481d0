from __future__ import annotations

import asyncio
import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Sequence

import semver
import typer

from .container import Container
from ..config.settings import ScannerSettings
from ..core.domain.enums import AdvisoryLevel
from ..core.domain.errors import SourceAuthorizationError
from ..core.domain.models import Advisory, Package


app = typer.Typer(help="Advisory Scanner: check npm packages against a vulnerability source")

RANGE_PREFIXES = "^~"


@contextmanager
def provide_container() -> Iterator[Container]:
    container = Container()
    container.config.from_pydantic(ScannerSettings())
    logging.basicConfig(
        level=str(container.config.log_level() or "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    container.init_resources()
    try:
        yield container
    finally:
        container.shutdown_resources()


def pinned_version(spec: str) -> Optional[str]:
    """Return the version a ``^``/``~`` spec starts from, or None for anything that is not one exact version."""
    version = str(spec).strip().lstrip(RANGE_PREFIXES).strip()
    return version if semver.Version.is_valid(version) else None


def read_package_json(path: Path) -> list[Package]:
    """Collect ``dependencies`` and ``devDependencies`` with leading ``^``/``~`` stripped.

    Ranges such as ``>=1.2.0``, ``1.x`` or tags like ``latest`` cannot be scanned
    and are skipped with a message on stderr.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    packages: list[Package] = []
    for section in ("dependencies", "devDependencies"):
        for name, spec in (data.get(section) or {}).items():
            version = pinned_version(spec)
            if version is None:
                typer.echo(f"Skipping {name}: '{spec}' is not a pinned version", err=True)
                continue
            packages.append(Package(name=name, version=version))
    return packages


def _run_scan(packages: Sequence[Package]) -> None:
    with provide_container() as container:
        try:
            uc = container.scan_uc()
            advisories = asyncio.run(uc.execute(packages))
        except SourceAuthorizationError as e:
            typer.echo(f"Authorization error: {e}", err=True)
            raise typer.Exit(code=1)
        except ValueError as e:
            typer.echo(f"Configuration error: {e}", err=True)
            raise typer.Exit(code=1)
    _print_advisories(advisories)
    if any(a.level is AdvisoryLevel.FATAL for a in advisories):
        raise typer.Exit(code=1)


def _print_advisories(advisories: Sequence[Advisory]) -> None:
    if not advisories:
        print("No advisories found")
        return
    print(f"{'Level':6} {'Package':35} {'ID':22} URL")
    for a in advisories:
        print(f"{a.level.value:6} {a.package:35} {a.id or '-':22} {a.url or '-'}")
        if a.description:
            print(f"       {a.description}")


@app.command("test", help="Scan packages given as name@version (scoped names such as @types/node@18.0.0 work).")
def test_cmd(
    specs: list[str] = typer.Argument(..., help="Packages to scan", metavar="NAME@VERSION"),
) -> None:
    try:
        packages = [Package.from_spec(s) for s in specs]
    except ValueError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=2)
    _run_scan(packages)


@app.command("scan", help="Scan dependencies and devDependencies of a package.json file.")
def scan_cmd(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to package.json"),
) -> None:
    try:
        packages = read_package_json(path)
    except ValueError as e:
        typer.echo(f"Cannot read {path}: {e}", err=True)
        raise typer.Exit(code=2)
    if not packages:
        typer.echo("No dependencies to scan")
        return
    _run_scan(packages)


if __name__ == "__main__":  # pragma: no cover
    app()
