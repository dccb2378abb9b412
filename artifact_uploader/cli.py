"""Command line interface for artifact_uploader package."""
from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich.logging import RichHandler

from .cli_output import BatchProgressDisplay, render_batch_result, render_configuration_summary
from .config import (
    DEFAULT_API_ENDPOINT,
    DESTINATION_ENV,
    BackendSettings,
    UploadConfig,
    follow_symlinks_from_env,
)
from .errors import ArtifactUploadError


DEFAULT_CONCURRENCY = 10

UPLOAD_HELP = """\
Uploads files to a job as artifacts.

Surround the pattern in quotes, otherwise the shell expands it before it
reaches this command. Several patterns may be separated with ';'.

Artifacts go to the default artifact storage unless a destination is given,
either as the second argument or in ARTIFACT_UPLOAD_DESTINATION:

  artifact-upload "log/**/*.log"
  artifact-upload "log/**/*.log" s3://name-of-your-s3-bucket/$ARTIFACT_JOB_ID
  artifact-upload "log/**/*.log" gs://name-of-your-gs-bucket/$ARTIFACT_JOB_ID
  artifact-upload "log/**/*.log" rt://name-of-your-artifactory-repo/$ARTIFACT_JOB_ID
"""


class CLIError(RuntimeError):
    """Bad arguments or environment; reported as `ERROR: ...` with exit code 1."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug or --log-level is provided.
    Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    if silent or (not debug and not log_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, log_level.upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)
    return logging.getLevelName(level)


def _parse_env_value(value: str) -> str:
    """Unquote a value; unquoted values lose a trailing ` # comment`."""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value.split(" #", 1)[0].rstrip()


def _load_env_file(path: Path, override: bool = False) -> None:
    if not path.exists():
        raise CLIError(f"env file not found: {path}")
    if not path.is_file():
        raise CLIError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for lineno, raw_line in enumerate(content.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].lstrip()

        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            raise CLIError(f"{path}:{lineno}: expected KEY=VALUE, got {raw_line.strip()!r}")
        if override or key not in os.environ:
            os.environ[key] = _parse_env_value(value)


def _find_env_file(explicit: Optional[str]) -> Optional[Path]:
    """An explicit --env-file wins; otherwise ./.env is used when present."""
    if explicit:
        return Path(explicit)
    local = Path(".env")
    return local if local.is_file() else None


def _build_config(args: argparse.Namespace) -> UploadConfig:
    endpoint = args.endpoint or os.getenv("ARTIFACT_API_ENDPOINT") or DEFAULT_API_ENDPOINT
    access_token = args.access_token or os.getenv("ARTIFACT_ACCESS_TOKEN") or ""
    if not access_token:
        raise CLIError("an access token is required (--access-token or ARTIFACT_ACCESS_TOKEN)")
    if args.concurrency < 1:
        raise CLIError("--concurrency must be at least 1")

    return UploadConfig(
        endpoint=endpoint,
        access_token=access_token,
        concurrency=args.concurrency,
        follow_symlinks=args.follow_symlinks or follow_symlinks_from_env(),
        content_type=args.content_type or os.getenv("ARTIFACT_CONTENT_TYPE") or "",
    )


def _build_settings(args: argparse.Namespace) -> BackendSettings:
    settings = BackendSettings.from_env()
    if args.s3_acl:
        settings = dataclasses.replace(settings, s3_acl=args.s3_acl)
    return settings


async def _run_upload(
    pattern: str,
    destination: Optional[str],
    job_id: str,
    config: UploadConfig,
    settings: BackendSettings,
) -> int:
    from .orchestrator import UploadSession

    display = BatchProgressDisplay()
    async with UploadSession(config, settings=settings) as session:
        result = await session.upload(
            pattern,
            job_id,
            destination,
            progress_callback=display.on_artifact_done,
        )

    render_batch_result(result)
    if result.success:
        return 0

    for failure in result.failures:
        print(f"ERROR: failed to upload {failure.display_path}: {failure.error}", file=sys.stderr)
    return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="artifact-upload",
        description=UPLOAD_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("pattern", nargs="?", help="Glob pattern of files to upload (quote it)")
    parser.add_argument(
        "destination",
        nargs="?",
        default=None,
        help=f"s3://, gs:// or rt:// destination (default from {DESTINATION_ENV})",
    )
    parser.add_argument(
        "--job",
        default=None,
        help="Which job the artifacts belong to (default from ARTIFACT_JOB_ID)",
    )
    parser.add_argument(
        "--content-type",
        default=None,
        help="A specific Content-Type to set for all artifacts (otherwise detected)",
    )
    parser.add_argument(
        "--follow-symlinks",
        action="store_true",
        help="Follow symbolic links to directories while resolving globs",
    )
    parser.add_argument(
        "--s3-acl",
        default=None,
        help="ACL for objects uploaded to S3 (default from ARTIFACT_S3_ACL or public-read)",
    )
    parser.add_argument(
        "--endpoint",
        default=None,
        help=f"Orchestration API endpoint (default from ARTIFACT_API_ENDPOINT or {DEFAULT_API_ENDPOINT})",
    )
    parser.add_argument(
        "--access-token",
        default=None,
        help="Orchestration API access token (default from ARTIFACT_ACCESS_TOKEN)",
    )
    parser.add_argument(
        "-j",
        "--concurrency",
        type=int,
        default=DEFAULT_CONCURRENCY,
        help=f"Maximum uploads in flight (default {DEFAULT_CONCURRENCY})",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="artifact-upload (from artifact_uploader)",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = _find_env_file(args.env_file)
    if used_env_file is not None:
        try:
            _load_env_file(used_env_file)
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.pattern is None:
        parser.print_help()
        return 0

    job_id = args.job or os.getenv("ARTIFACT_JOB_ID")
    if not job_id:
        print("ERROR: a job id is required (--job or ARTIFACT_JOB_ID)", file=sys.stderr)
        return 1

    try:
        config = _build_config(args)
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    settings = _build_settings(args)

    if not args.silent:
        render_configuration_summary(
            {
                "Pattern": args.pattern,
                "Destination": args.destination or os.getenv(DESTINATION_ENV) or "(default)",
                "Job": job_id,
                "Endpoint": config.endpoint,
                "Content Type": config.content_type or "(detected)",
                "Follow Symlinks": "yes" if config.follow_symlinks else "no",
                "Concurrency": config.concurrency,
                "Env File": str(used_env_file) if used_env_file else "-",
                "Logging": effective_log_mode,
            }
        )

    try:
        return asyncio.run(
            _run_upload(
                pattern=args.pattern,
                destination=args.destination,
                job_id=job_id,
                config=config,
                settings=settings,
            )
        )
    except ArtifactUploadError as exc:
        print(f"ERROR: {exc.stage}: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
