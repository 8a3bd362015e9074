from __future__ import annotations

import json
import sys

from cronfetch.config import configure_logging, load_settings
from cronfetch.errors import ConfigurationError
from cronfetch.server import build_service, serve

USAGE = "usage: python -m cronfetch.workers.cli <validate|run-once [--strict]|serve>"


def cmd_validate(argv: list[str]) -> int:
    settings = load_settings()
    print(json.dumps({"ok": True, "settings": settings.to_dict()}, ensure_ascii=False, indent=2))
    return 0


def cmd_run_once(argv: list[str]) -> int:
    settings = load_settings()
    configure_logging(settings.log_level)
    service = build_service(settings)
    result = service.coordinator.trigger_run("cli")
    report = result.report
    if report is None:
        print(json.dumps({"ok": False, "status": result.status}, ensure_ascii=False))
        return 1
    print(json.dumps({"ok": report.failed == 0, **report.to_dict()}, ensure_ascii=False, indent=2))
    if "--strict" in argv and report.failed:
        return 1
    return 0


def cmd_serve(argv: list[str]) -> int:
    settings = load_settings()
    configure_logging(settings.log_level)
    serve(settings)
    return 0


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv:
        print(USAGE, file=sys.stderr)
        return 2
    cmd, tail = argv[0], argv[1:]
    try:
        if cmd == "validate":
            return cmd_validate(tail)
        if cmd == "run-once":
            return cmd_run_once(tail)
        if cmd == "serve":
            return cmd_serve(tail)
        print(f"Unknown command: {cmd}", file=sys.stderr)
        print(USAGE, file=sys.stderr)
        return 2
    except ConfigurationError as e:
        print(json.dumps({"ok": False, "error_code": e.err.code, "error": str(e)}, ensure_ascii=False))
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
