from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from uuid import uuid4

from mail_composer.builder import Email
from mail_composer.config import load_config
from mail_composer.errors import EmailDeliveryError, MailComposerError
from mail_composer.render.eml import write_eml_file
from mail_composer.storage.log import StructuredLogger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mail_composer", description="Compose and send plain-text email")
    subparsers = parser.add_subparsers(dest="command")

    compose = subparsers.add_parser("compose", help="Compose a message, write it as .eml and optionally send it")
    compose.add_argument("--from", dest="sender", default=None, help="sender address (defaults to FROM_EMAIL)")
    compose.add_argument("--to", action="append", default=[], help="To recipient (repeatable)")
    compose.add_argument("--cc", action="append", default=[], help="Cc recipient (repeatable)")
    compose.add_argument("--bcc", action="append", default=[], help="Bcc recipient (repeatable)")
    compose.add_argument("--reply-to", action="append", default=[], help="Reply-To address (repeatable)")
    compose.add_argument("--subject", default=None)
    compose.add_argument("--msg", default=None, help="plain-text body")
    compose.add_argument("--header", action="append", default=[], help="extra header as NAME=VALUE (repeatable)")
    compose.add_argument("--host", default=None, help="SMTP host (overrides SMTP_HOST)")
    compose.add_argument("--out", default="message.eml", help="output .eml path")
    compose.add_argument("--send", action="store_true", help="deliver over SMTP after writing the .eml")

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint.

    Builds one message from the flags, writes it to ``--out``, optionally
    sends it, and prints a JSON summary. Composition errors exit with 2,
    delivery errors with 1.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command != "compose":
        parser.print_help()
        return 1

    cfg = load_config()
    logger = StructuredLogger(path=cfg.log_path, session_id=uuid4().hex[:12])
    try:
        email = Email.from_config(cfg, logger=logger)
        if args.host:
            email.set_host_name(args.host)
        message = _compose(email, args)
    except MailComposerError as exc:
        print(f"[mail_composer] {exc}", file=sys.stderr)
        return 2

    out_path = Path(args.out)
    write_eml_file(message=message, out_path=out_path)
    logger.info("email_eml_written", stage="render", status="ok", path=str(out_path))

    sent = False
    if args.send:
        try:
            email.send()
            sent = True
        except EmailDeliveryError as exc:
            print(f"[mail_composer] {exc}", file=sys.stderr)
            return 1
        except MailComposerError as exc:
            print(f"[mail_composer] {exc}", file=sys.stderr)
            return 2

    summary = {
        "from": message.sender.address,
        "recipients": [a.address for a in message.all_recipients()],
        "subject": message.subject,
        "sent_date": message.sent_date.isoformat(),
        "eml": str(out_path),
        "sent": sent,
    }
    print(json.dumps(summary, indent=2, ensure_ascii=True))
    return 0


def _compose(email: Email, args: argparse.Namespace):
    if args.sender:
        email.set_from(args.sender)
    email.add_to(args.to)
    email.add_cc(args.cc)
    email.add_bcc(args.bcc)
    for address in args.reply_to:
        email.add_reply_to(address)
    if args.subject is not None:
        email.set_subject(args.subject)
    if args.msg is not None:
        email.set_msg(args.msg)
    for raw in args.header:
        name, _, value = raw.partition("=")
        email.add_header(name.strip(), value.strip())
    return email.build()


if __name__ == "__main__":
    raise SystemExit(main())
