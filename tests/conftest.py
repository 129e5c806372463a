"""
Shared test fixtures — synthetic page snapshots, pricing catalog, fake
renderer and an in-memory audit store.
"""

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from leadaudit.database import Base
from leadaudit.errors import RenderError
from leadaudit.schemas import AuditOptions, NetworkRequest, PageSnapshot, ProbePlan
from leadaudit.services.catalog import load_catalog

CAPTURED_AT = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


# ═══════════════════════════════════════════════════════════
# SAMPLE PAGES
# ═══════════════════════════════════════════════════════════

MODERN_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <title>Acme Plumbing | Emergency Plumbers in Austin TX</title>
  <meta name="description" content="Acme Plumbing fixes leaks, clogs and water heaters across Austin, Round Rock and Pflugerville. Licensed, insured and on call around the clock.">
  <meta property="og:title" content="Acme Plumbing">
  <meta property="og:description" content="24/7 emergency plumbing in Austin.">
  <meta property="og:site_name" content="Acme Plumbing Co.">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <link rel="canonical" href="https://acme-plumbing.com/">
  <link rel="manifest" href="/manifest.json">
  <link href="https://fonts.googleapis.com/css2?family=Inter" rel="stylesheet">
  <script type="application/ld+json">{"@context": "https://schema.org", "@type": "Plumber"}</script>
  <style>
    .grid { display: grid; grid-template-columns: 1fr 1fr; }
    .btn { transition: all .2s ease; }
    @media (max-width: 600px) { .hero { padding: 1rem; } }
  </style>
</head>
<body>
  <header><nav><a href="/">Home</a> <a href="/services">Services</a></nav></header>
  <section class="hero"><h1>Austin's Fastest Plumbers</h1><a class="btn" href="/quote">Get a Quote</a></section>
  <section class="grid"><img src="/van.jpg" alt="Our van" loading="lazy"></section>
  <footer>Acme Plumbing Co. Call us: contact@acme-plumbing.com</footer>
  <script>if ('serviceWorker' in navigator) { navigator.serviceWorker.register('/sw.js'); }</script>
</body>
</html>"""

MODERN_TEXT = "Home Services Austin's Fastest Plumbers Get a Quote Acme Plumbing Co. Call us: contact@acme-plumbing.com"

BARE_HTML = """<html><head></head><body>
<table width="100%"><tr><td>Welcome to Bob's Hardware</td></tr></table>
</body></html>"""

# everything except the canonical link
NO_CANONICAL_HTML = """<html><head>
<title>Sunrise Bakery - Artisan Bread and Pastries in Manor</title>
<meta name="description" content="Fresh bread daily.">
<meta property="og:title" content="Sunrise Bakery">
<meta property="og:description" content="Artisan bread and pastries.">
<meta name="viewport" content="width=device-width, initial-scale=1">
</head><body><h1>Sunrise Bakery</h1></body></html>"""


def make_snapshot(
    html: str = "",
    *,
    url: str = "https://acme-plumbing.com/",
    requests: tuple[str, ...] = (),
    globals_present: tuple[str, ...] = (),
    visible_selectors: tuple[str, ...] = (),
    visible_links: tuple[str, ...] = (),
    visible_text: str = "",
    screenshot: bytes | None = None,
    status_code: int | None = 200,
) -> PageSnapshot:
    return PageSnapshot(
        final_url=url,
        dom_html=html,
        visible_text=visible_text,
        network_requests=tuple(
            NetworkRequest(url=u, timestamp=1_772_366_400.0 + i) for i, u in enumerate(requests)
        ),
        screenshot=screenshot,
        status_code=status_code,
        globals_present=frozenset(globals_present),
        visible_selectors=frozenset(visible_selectors),
        visible_links=tuple(visible_links),
        captured_at=CAPTURED_AT,
    )


@pytest.fixture()
def snapshot_factory():
    return make_snapshot


@pytest.fixture()
def modern_snapshot():
    return make_snapshot(
        MODERN_HTML,
        requests=("https://acme-plumbing.com/app.js", "https://fonts.googleapis.com/css2?family=Inter"),
        visible_text=MODERN_TEXT,
    )


@pytest.fixture()
def bare_snapshot():
    return make_snapshot(BARE_HTML, url="http://bobs-hardware.com/", visible_text="Welcome to Bob's Hardware")


@pytest.fixture()
def catalog():
    return load_catalog()


@pytest.fixture()
def fast_options():
    return AuditOptions(render_timeout_ms=2000, per_detector_timeout_ms=500, settle_delay_ms=0)


# ═══════════════════════════════════════════════════════════
# FAKE RENDERER
# ═══════════════════════════════════════════════════════════


class FakeRenderer:
    """Hands back a prepared snapshot, or raises a prepared RenderError."""

    def __init__(self, snapshot: PageSnapshot | None = None, error: RenderError | None = None):
        self.snapshot = snapshot
        self.error = error
        self.calls: list[dict] = []

    async def render(
        self,
        url: str,
        *,
        timeout_ms: int,
        settle_delay_ms: int,
        probes: ProbePlan,
        capture_screenshot: bool = False,
    ) -> PageSnapshot:
        self.calls.append({
            "url": url,
            "timeout_ms": timeout_ms,
            "settle_delay_ms": settle_delay_ms,
            "probes": probes,
            "capture_screenshot": capture_screenshot,
        })
        if self.error is not None:
            raise self.error
        return self.snapshot


@pytest.fixture()
def fake_renderer_cls():
    return FakeRenderer


# ═══════════════════════════════════════════════════════════
# TEST DATABASE (SQLite in-memory)
# ═══════════════════════════════════════════════════════════

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture()
async def db_engine():
    import leadaudit.models  # noqa: F401

    engine = create_async_engine(TEST_DB_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(db_engine):
    session_factory = async_sessionmaker(db_engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session
