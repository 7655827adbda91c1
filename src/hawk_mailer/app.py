# =============================================================================
# Hawk-Mailer Command Line
# =============================================================================
# Composes a message from command-line options and sends it with the
# transport selected in the configuration file.
#
#   hawk-mailer send --from me@example.com --to you@example.org \
#       --subject "Hello" --body "Hi there"
#
#   hawk-mailer send --from news@example.com --html --body-file issue.html \
#       --subscriber a@example.org --subscriber b@example.org
# =============================================================================

import argparse
import logging
import sys
from pathlib import Path

from hawk_mailer import __app_name__, __version__
from hawk_mailer.config import Config, ConfigError, print_paths
from hawk_mailer.core import Address, AddressError, Attachment, ContentType, Message


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        prog=__app_name__,
        description="Hawk-Mailer: compose MIME email and send it via mail, sendmail or SMTP",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--paths",
        action="store_true",
        help="Print configuration paths and exit",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config file (default: XDG config location)",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode (verbose logging)",
    )

    commands = parser.add_subparsers(dest="command")

    send = commands.add_parser("send", help="Compose and send a message")
    send.add_argument("--from", dest="sender", required=True, help="Sender, e.g. 'Name <me@example.com>'")
    send.add_argument("--to", action="append", help="Recipient (repeatable)")
    send.add_argument("--cc", action="append", help="Cc recipient (repeatable)")
    send.add_argument("--bcc", action="append", help="Bcc recipient (repeatable)")
    send.add_argument("--reply-to", help="Reply-To address (default: sender)")
    send.add_argument("--return-path", default="", help="Envelope sender for bounces")
    send.add_argument(
        "--subscriber",
        action="append",
        help="Broadcast recipient (repeatable); each gets a separate delivery",
    )
    send.add_argument("--subject", default="", help="Subject line")
    body = send.add_mutually_exclusive_group(required=True)
    body.add_argument("--body", help="Message body")
    body.add_argument("--body-file", type=Path, help="Read the message body from a file")
    send.add_argument("--html", action="store_true", help="The body is HTML")
    send.add_argument("--alt-body", default="", help="Plain-text fallback for HTML mail")
    send.add_argument("--attach", action="append", type=Path, help="File to attach (repeatable)")
    send.add_argument("--priority", type=int, choices=range(1, 6), help="X-Priority (1-5)")
    send.add_argument("--charset", default="utf-8", help="Character set of the text parts")

    return parser.parse_args(argv)


def build_message(args: argparse.Namespace) -> Message:
    """
    Build a Message from the "send" options.

    Raises:
        AddressError: If an address is invalid.
        OSError: If --body-file cannot be read.
    """
    body = args.body if args.body is not None else args.body_file.read_text(encoding="utf-8")

    return Message(
        sender=Address.parse(args.sender),
        to=args.to,
        cc=args.cc,
        bcc=args.bcc,
        reply_to=Address.parse(args.reply_to) if args.reply_to else None,
        return_path=args.return_path,
        subscribers=args.subscriber,
        subject=args.subject,
        body=body,
        alt_body=args.alt_body,
        content_type=ContentType.HTML if args.html else ContentType.PLAIN,
        charset=args.charset,
        priority=args.priority,
        attachments=[Attachment(path) for path in args.attach] if args.attach else None,
    )


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for Hawk-Mailer.

    This function:
        1. Parses command-line arguments
        2. Handles special commands (--paths, --version)
        3. Loads configuration
        4. Builds the message and sends it

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    # Handle --paths flag
    if args.paths:
        print_paths()
        return 0

    if args.command != "send":
        print(f"Nothing to do. Try '{__app_name__} send --help'.", file=sys.stderr)
        return 2

    try:
        config = Config.load(args.config)
        transport = config.transport()
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 1

    try:
        message = build_message(args)
    except (AddressError, OSError) as e:
        print(f"Cannot build message: {e}", file=sys.stderr)
        return 1

    outcome = transport.send(message)
    if not outcome:
        for code, text in outcome.errors:
            prefix = f"[{code}] " if code is not None else ""
            print(f"{prefix}{text}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
