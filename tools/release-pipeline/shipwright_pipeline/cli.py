from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
from contextlib import contextmanager
from typing import Iterator, List, Optional

from shipwright_release.credentials import require_credential
from shipwright_release.errors import ReleaseError
from shipwright_release.hosting import GitHubReleaseHost
from shipwright_release.manifest import read_version
from shipwright_release.scm import GitCli

from .builder import CargoBuildExecutor
from .config import DEFAULT_CONFIG_NAME, PipelineConfig, load_config
from .logging_config import configure_logging
from .pipeline import ReleasePipeline
from .versioning import format_tag

logger = logging.getLogger(__name__)


def build_pipeline(config: PipelineConfig) -> ReleasePipeline:
    """Wire the real collaborators (git, GitHub Releases, cross) for ``config``."""

    repo = config.require_repo()
    token = require_credential(
        config.release.token_env,
        dotenv_paths=[config.workspace_root / ".env"],
    )
    host = GitHubReleaseHost(
        repo,
        token,
        api_url=config.release.api_url,
        upload_url=config.release.upload_url,
    )
    scm = GitCli(config.workspace_root, remote=config.release.remote)
    executor = CargoBuildExecutor(config.build_settings())
    return ReleasePipeline(config, scm=scm, host=host, executor=executor)


@contextmanager
def _cancel_on_signals(pipeline: ReleasePipeline) -> Iterator[None]:
    def _handler(signum, _frame) -> None:
        logger.warning("Received signal %s", signum)
        pipeline.cancel()

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            previous[signum] = signal.signal(signum, _handler)
        except ValueError:  # pragma: no cover - not running in the main thread
            continue
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="shipwright-release",
        description="Tag, draft and publish a multi-platform release from the manifest version",
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG_NAME, help="Pipeline configuration file")
    parser.add_argument("--workspace-root", help="Workspace root (defaults to the config file's directory)")
    parser.add_argument("--log-level", help="Overrides LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run the release pipeline")
    run_parser.add_argument(
        "--target",
        action="append",
        dest="targets",
        help="Only build this target (platform or artifact name); repeatable",
    )

    subparsers.add_parser("version", help="Show the manifest version and the tag it maps to")
    subparsers.add_parser("targets", help="List the configured build targets")

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = load_config(args.config, workspace_root=args.workspace_root)
    except ReleaseError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    if args.command == "targets":
        payload = [target.model_dump(mode="json", exclude_none=True) for target in config.targets]
        print(json.dumps(payload, indent=2))
        return 0

    if args.command == "version":
        try:
            version = read_version(config.manifest_path, config.release.version_field)
        except ReleaseError as exc:
            print(str(exc), file=sys.stderr)
            return 2
        payload = {
            "manifest": str(config.manifest_path),
            "version": version,
            "tag": format_tag(version, config.release.tag_prefix),
        }
        print(json.dumps(payload, indent=2))
        return 0

    if args.command == "run":
        try:
            pipeline = build_pipeline(config)
        except ReleaseError as exc:
            print(str(exc), file=sys.stderr)
            return 2

        with _cancel_on_signals(pipeline):
            run = pipeline.run(only_targets=args.targets)
        print(json.dumps(run.to_dict(), indent=2))
        return run.exit_code

    parser.error("Unknown command")
    return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
