"""
Lead Audit — command line entry point.

    python -m leadaudit acme-plumbing.com --vision --save
"""

import argparse
import asyncio
import logging
import sys

from leadaudit.errors import AuditError
from leadaudit.pipeline.orchestrator import run_audit
from leadaudit.schemas import AuditOptions, WebsiteAudit


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="leadaudit",
        description="Render a website, audit it and print the priced opportunity report as JSON.",
    )
    parser.add_argument("url", help="Website to audit (scheme optional)")
    parser.add_argument("--vision", action="store_true", help="Score the design with the vision model")
    parser.add_argument("--pagespeed", action="store_true", help="Fetch PageSpeed Insights scores")
    parser.add_argument("--mx", action="store_true", help="Check the contact email's MX records")
    parser.add_argument("--render-timeout-ms", type=int, default=None)
    parser.add_argument("--detector-timeout-ms", type=int, default=None)
    parser.add_argument("--save", action="store_true", help="Store the audit in DATABASE_URL")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def options_from_args(args: argparse.Namespace) -> AuditOptions:
    overrides: dict = {}
    if args.vision:
        overrides["enable_vision_scoring"] = True
    if args.pagespeed:
        overrides["enable_pagespeed"] = True
    if args.mx:
        overrides["enable_mx_check"] = True
    if args.render_timeout_ms is not None:
        overrides["render_timeout_ms"] = args.render_timeout_ms
    if args.detector_timeout_ms is not None:
        overrides["per_detector_timeout_ms"] = args.detector_timeout_ms
    return AuditOptions(**overrides)


async def _save(audit: WebsiteAudit) -> None:
    from leadaudit.database import async_session, close_db, init_db
    from leadaudit.services.audit_store import save_audit

    await init_db()
    try:
        async with async_session() as session:
            await save_audit(session, audit)
    finally:
        await close_db()


async def _main(args: argparse.Namespace) -> int:
    audit = await run_audit(args.url, options_from_args(args))
    if args.save:
        await _save(audit)
    print(audit.model_dump_json(indent=2))
    return 2 if audit.is_degraded else 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        stream=sys.stderr,
    )
    try:
        return asyncio.run(_main(args))
    except AuditError as exc:
        logging.getLogger("leadaudit").error("Audit aborted: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
