"""Entry point for Proofpad.

Usage:
    python -m proofpad.main                           # editor window
    python -m proofpad.main --check notes.txt         # headless check
    python -m proofpad.main --check - --offline       # stdin, local rules only
"""
import sys
import json
import signal
import logging
import argparse

logger = logging.getLogger(__name__)

SAMPLE_TEXT = (
    "This are bad sentence.\n\n"
    "Paste or type text here. Suggestions will appear on the right."
)

EXIT_CLEAN = 0
EXIT_MATCHES = 1
EXIT_FAILED = 2


def setup_logging(debug: bool = False):
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def line_col(text: str, offset: int):
    """1-based line and column of ``offset`` in ``text``."""
    line = text.count("\n", 0, offset) + 1
    col = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return line, col


def format_match(text: str, match) -> str:
    line, col = line_col(text, match.offset)
    flagged = text[match.offset:match.end]
    suggestions = ", ".join(repr(r) for r in match.replacements) or "(no suggestions)"
    return (f"{line}:{col} {match.severity.label}: {match.message} "
            f"[{flagged!r}] -> {suggestions}")


def match_to_dict(text: str, match) -> dict:
    line, col = line_col(text, match.offset)
    return {
        "offset": match.offset,
        "length": match.length,
        "line": line,
        "column": col,
        "text": text[match.offset:match.end],
        "message": match.message,
        "shortMessage": match.short_message,
        "severity": match.severity.value,
        "issueType": match.issue_type,
        "rule": match.rule_id,
        "replacements": list(match.replacements),
    }


def run_check(path: str, config, language: str = None, offline: bool = False,
              as_json: bool = False, out=None) -> int:
    """Check one file (``-`` for stdin) and print the findings.

    Returns 0 when clean, 1 when there are findings, 2 when the service
    could not be used.
    """
    from proofpad.api_client import AnalysisError, ConfigError, LanguageToolClient
    from proofpad.fallback import LocalChecker

    out = out or sys.stdout
    language = language or config.language

    if path == "-":
        text = sys.stdin.read()
    else:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()

    if offline:
        matches = LocalChecker(spelling=config.fallback_spelling).check(text, language)
    else:
        try:
            client = LanguageToolClient(
                config.api_base_url,
                timeout_ms=config.request_timeout_ms,
                username=config.lt_username,
                api_key=config.lt_api_key,
            )
            matches = client.check(text, language)
        except (AnalysisError, ConfigError) as e:
            logger.error("Check failed: %s", e)
            print(f"Check failed: {e}", file=sys.stderr)
            return EXIT_FAILED

    if as_json:
        json.dump([match_to_dict(text, m) for m in matches], out, indent=2, ensure_ascii=False)
        out.write("\n")
    else:
        for m in matches:
            out.write(format_match(text, m) + "\n")
        out.write(f"{len(matches)} issue(s) found\n")

    return EXIT_MATCHES if matches else EXIT_CLEAN


def run_gui(config):
    """Run the editor window."""
    from PyQt5.QtWidgets import QApplication
    from proofpad.editor_ui import EditorWindow
    from proofpad.session import EditorSession

    app = QApplication(sys.argv)
    app.setApplicationName("Proofpad")

    session = EditorSession(config, text=SAMPLE_TEXT)
    window = EditorWindow(config, session)
    window.show()
    session.start()

    exit_code = app.exec_()
    session.stop()
    sys.exit(exit_code)


def main(argv=None):
    signal.signal(signal.SIGINT, signal.SIG_DFL)

    parser = argparse.ArgumentParser(description="Proofpad — live writing suggestions")
    parser.add_argument("--check", metavar="FILE",
                        help="Check FILE ('-' for stdin) and print suggestions, no GUI")
    parser.add_argument("--offline", action="store_true",
                        help="With --check: use local rules only")
    parser.add_argument("--json", action="store_true",
                        help="With --check: print suggestions as JSON")
    parser.add_argument("--language", help="Language code, e.g. en-US, or 'auto'")
    parser.add_argument("--api-base", help="LanguageTool server base URL")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    from proofpad.config import Config
    config = Config()
    setup_logging(args.debug or config.debug_logging)

    if args.api_base:
        config.override("api_base_url", args.api_base)
    if args.language:
        config.override("language", args.language)

    if args.check:
        sys.exit(run_check(args.check, config, offline=args.offline, as_json=args.json))
    run_gui(config)


if __name__ == "__main__":
    main()
