"""Pytest configuration and fixtures."""

import io
import zipfile
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from miniapp_guide.app_catalog import load_app_catalog
from miniapp_guide.entities import Base

REPO_ROOT = Path(__file__).resolve().parent.parent

SEND_SCREEN_KT = '''package com.anam.wallet.ui

import androidx.compose.runtime.Composable

@Composable
fun SendScreen(viewModel: WalletViewModel) {
    Column(modifier = Modifier.padding(16.dp)) {
        OutlinedTextField(
            value = viewModel.address,
            onValueChange = { viewModel.address = it },
            label = { Text("받는 주소") },
            modifier = Modifier.testTag("input_address")
        )
        Button(
            onClick = { viewModel.transfer() },
            modifier = Modifier.testTag("btn_send").semantics { contentDescription = "송금" }
        ) {
            Text("Send")
        }
    }
}
'''

MAIN_SCREEN_KT = '''package com.anam.wallet.ui

@Composable
fun MainScreen(onNavigate: (String) -> Unit) {
    Button(
        onClick = { navigateTo("send") },
        modifier = Modifier.testTag("btn_go_send")
    ) {
        Text("Send")
    }
    Text("Balance")
}

fun helperNotComposable() {
    Button(onClick = {}) { Text("Hidden") }
}
'''


class FakeCompleter:
    """
    Scripted completer. `responses` is consumed in order; an entry may be a
    string, None, an Exception instance (raised), or a callable taking
    (system_prompt, user_prompt).
    """

    def __init__(self, responses: Optional[List[Union[str, None, Exception, Callable]]] = None):
        self.responses = list(responses or [])
        self.calls: List[Dict[str, str]] = []

    def complete(self, system_prompt: str, user_prompt: str) -> Optional[str]:
        self.calls.append({"system": system_prompt, "user": user_prompt})
        if not self.responses:
            return None
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(system_prompt, user_prompt)
        return response


def build_zip(entries: Dict[str, Union[str, bytes, None]]) -> bytes:
    """In-memory zip; a None value (or a name ending with '/') adds a directory entry."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, content in entries.items():
            if content is None or name.endswith("/"):
                archive.writestr(zipfile.ZipInfo(name if name.endswith("/") else name + "/"), b"")
            else:
                archive.writestr(name, content)
    return buf.getvalue()


@pytest.fixture
def session_factory():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)
    yield factory
    engine.dispose()


@pytest.fixture
def fake_completer():
    return FakeCompleter()


@pytest.fixture
def catalog():
    return load_app_catalog(REPO_ROOT / "config" / "app_catalog.jsonc")


@pytest.fixture
def wallet_zip():
    return build_zip({
        "wallet/app/src/main/java/ui/SendScreen.kt": SEND_SCREEN_KT,
        "wallet/app/src/main/java/ui/MainScreen.kt": MAIN_SCREEN_KT,
        "wallet/app/build/generated/Generated.kt": "@Composable fun G() { Button(onClick = {}) {} }",
        "wallet/README.md": "# wallet",
    })
