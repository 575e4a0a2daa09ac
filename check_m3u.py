from __future__ import annotations

import argparse
import sys
from pathlib import Path

from streamcheck.classifier import UrlClassifier
from streamcheck.errors import CheckError, NotFoundError, UsageError
from streamcheck.http_probe import new_session
from streamcheck.m3u import default_output_path, read_playlist
from streamcheck.report import RunReporter
from streamcheck.runner import check_dependencies, run_check
from streamcheck.settings import CheckSettings

# Point d'entrée en ligne de commande: vérifie une playlist M3U et écrit une copie sans liens MP4.

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


class _Parser(argparse.ArgumentParser):
    def error(self, message):
        raise UsageError(message)


def _positive_float(value: str) -> float:
    try:
        f = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}")
    if f <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0: {value!r}")
    return f


def build_parser() -> argparse.ArgumentParser:
    ap = _Parser(
        prog="check-m3u",
        description="Check an M3U playlist and drop every MP4 (progressive download) entry.",
        epilog="Example: check-m3u playlist.m3u playlist_clean.m3u",
    )
    ap.add_argument("input", help="M3U playlist to check")
    ap.add_argument("output", nargs="?", default=None, help="cleaned playlist (default: <input>_clean.<ext>)")
    ap.add_argument("--timeout", type=_positive_float, default=None, help="HTTP timeout in seconds (default 10)")
    ap.add_argument("--probe-timeout", type=_positive_float, default=None, help="ffprobe timeout in seconds (default 15)")
    ap.add_argument("--ffprobe", default=None, help="path to the ffprobe executable")
    ap.add_argument("--no-ffprobe", action="store_true", help="skip deep probing even if ffprobe is installed")
    ap.add_argument("--require-ffprobe", action="store_true", help="fail if ffprobe is not available")
    ap.add_argument(
        "--defer-octet-stream",
        action="store_true",
        help="let ffprobe decide application/octet-stream responses instead of keeping them",
    )
    return ap


def _settings_from_args(args: argparse.Namespace) -> CheckSettings:
    return CheckSettings.from_env().with_overrides(
        http_timeout_s=args.timeout,
        probe_timeout_s=args.probe_timeout,
        ffprobe_path=args.ffprobe,
        use_ffprobe=False if args.no_ffprobe else None,
        require_ffprobe=True if args.require_ffprobe else None,
        defer_octet_stream=True if args.defer_octet_stream else None,
    )


def _log(msg: str) -> None:
    print(msg, flush=True)


def _error(msg: str) -> None:
    print(f"Error: {msg}", file=sys.stderr, flush=True)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except UsageError as e:
        parser.print_usage(sys.stderr)
        _error(str(e))
        return EXIT_ERROR

    input_path = Path(args.input)
    output_path = Path(args.output) if args.output else default_output_path(input_path)
    settings = _settings_from_args(args)

    try:
        if not input_path.is_file():
            raise NotFoundError(f"input file '{input_path}' does not exist")
        prober = check_dependencies(settings, _log)
        header, entries = read_playlist(input_path)
    except CheckError as e:
        _error(str(e))
        return EXIT_ERROR

    reporter = RunReporter(_log)
    reporter.start(input_path, output_path, deep_probe=prober is not None)
    with new_session(settings.user_agent) as session:
        classifier = UrlClassifier(settings, session=session, prober=prober, log=_log)
        try:
            run_check(header, entries, output_path, classifier, reporter)
        except KeyboardInterrupt:
            _error(f"interrupted, '{output_path}' left untouched")
            return EXIT_INTERRUPTED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
