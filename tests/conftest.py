"""
Shared test fixtures: fake backend, local storage and client wiring.
"""

import asyncio
from typing import AsyncGenerator, List, Tuple

import httpx
import msgspec
import pytest

from memory.local_storage import TOKEN_KEY, USER_KEY, LocalStorage
from readgye.api_client import ApiClient
from readgye.client import ReadgyeClient
from readgye.config import ClientConfig
from readgye.models import UserInfo
from tests.fake_backend import FakeBackend


GUEST_EMAIL = "guest@readgye.test"
GUEST_PASSWORD = "guest-password"
BASE_URL = "http://test"


# =============================================================================
# Core Fixtures
# =============================================================================

@pytest.fixture
def anyio_backend():
    """Use asyncio for async tests."""
    return "asyncio"


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def transport(backend: FakeBackend) -> httpx.ASGITransport:
    return httpx.ASGITransport(app=backend)


@pytest.fixture
def storage(tmp_path) -> LocalStorage:
    return LocalStorage(str(tmp_path / "client.db"))


@pytest.fixture
def config(tmp_path) -> ClientConfig:
    return ClientConfig(
        api_base_url=BASE_URL,
        guest_email=GUEST_EMAIL,
        guest_password=GUEST_PASSWORD,
        poll_interval_seconds=0.05,
        storage_path=str(tmp_path / "client.db"),
        log_dir=None,
    )


@pytest.fixture
async def api(transport: httpx.ASGITransport) -> AsyncGenerator[ApiClient, None]:
    client = ApiClient(BASE_URL, transport=transport)
    yield client
    await client.aclose()


@pytest.fixture
def alerts() -> List[Tuple[str, str]]:
    return []


@pytest.fixture
async def client(config, storage, transport, alerts) -> AsyncGenerator[ReadgyeClient, None]:
    """Client wired to the fake backend; not yet bootstrapped."""
    readgye_client = ReadgyeClient(
        config,
        storage=storage,
        transport=transport,
        alert=lambda title, message: alerts.append((title, message)),
    )
    yield readgye_client
    await readgye_client.aclose()


# =============================================================================
# Helpers
# =============================================================================

def store_user(storage: LocalStorage, user: UserInfo, token: str = None) -> None:
    """Seed persisted state as a previous run would have left it."""
    storage.set_item(USER_KEY, msgspec.json.encode(user).decode())
    if token is not None:
        storage.set_item(TOKEN_KEY, token)


async def wait_for(predicate, timeout: float = 2.0) -> None:
    """Yield to the event loop until ``predicate()`` holds."""
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


def make_pdf(page_count: int = 1) -> bytes:
    """Build a minimal, well-formed PDF with ``page_count`` blank pages."""
    page_ids = list(range(3, 3 + page_count))
    kids = " ".join(f"{page_id} 0 R" for page_id in page_ids)
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {page_count} >>".encode(),
    ] + [b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] >>" for _ in page_ids]

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode() + body + b"\nendobj\n"

    xref_offset = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode()
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode()
    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n"
        f"startxref\n{xref_offset}\n%%EOF\n"
    ).encode()
    return bytes(out)
