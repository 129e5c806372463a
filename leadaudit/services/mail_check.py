"""
Contact email deliverability — does the address's domain publish MX records?
"""

import asyncio
import logging

import dns.exception
import dns.resolver

from leadaudit.config import settings
from leadaudit.errors import SideChannelUnavailable

logger = logging.getLogger("leadaudit.mail_check")


async def check_mx_records(domain: str, timeout_secs: float | None = None) -> list[str]:
    """Resolve MX records for a domain. Returns sorted MX hosts ([] = none published)."""
    lifetime = timeout_secs or settings.mx_timeout_secs
    loop = asyncio.get_running_loop()
    try:
        answers = await loop.run_in_executor(
            None,
            lambda: dns.resolver.resolve(domain, "MX", lifetime=lifetime),
        )
    except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer, dns.resolver.NoNameservers):
        return []
    except dns.exception.Timeout as e:
        raise SideChannelUnavailable(f"MX lookup for {domain} timed out") from e
    except (dns.exception.DNSException, ValueError) as e:
        # Malformed names (empty labels, over-long labels) fail before any query is sent
        raise SideChannelUnavailable(f"MX lookup for {domain!r} failed: {e}") from e
    return sorted(str(r.exchange).rstrip(".") for r in answers)


async def is_deliverable(email: str, timeout_secs: float | None = None) -> bool:
    domain = email.rsplit("@", 1)[-1].lower()
    hosts = await check_mx_records(domain, timeout_secs)
    logger.debug("MX %s -> %s", domain, hosts or "none")
    return bool(hosts)
