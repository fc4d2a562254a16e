"""Tests for the app catalog and question-to-app resolution."""

import logging

import pytest

from conftest import FakeCompleter
from miniapp_guide.app_catalog import AppCatalog, load_app_catalog
from miniapp_guide.app_resolver import AppResolver

BITCOIN = "com.anam.rehrxj11f38gn09k"
ETHEREUM = "com.anam.osba5s0oy5582dc0"
BONMEDIA = "com.anam.6nqxb5qfm5lptbc9"
BUSAN = "com.anam.vh7lpswl75iqdarh"


class TestAppCatalog:
    def test_bundled_catalog(self, catalog):
        assert catalog.default_app_id == BITCOIN
        assert [a.app_id for a in catalog.apps] == [BITCOIN, ETHEREUM, BONMEDIA, BUSAN]
        assert catalog.knows(ETHEREUM)
        assert not catalog.knows("com.example.unknown")

    def test_describe(self, catalog):
        text = catalog.describe()
        assert text.startswith(f"1. {BITCOIN}\n   - 이름: Bitcoin Wallet\n   - 설명: 비트코인 블록체인 지갑")
        assert f"4. {BUSAN}" in text

    def test_load_with_comments(self, tmp_path):
        path = tmp_path / "catalog.jsonc"
        path.write_text(
            '{\n'
            '  // default\n'
            '  "default_app_id": "a",\n'
            '  "apps": [{"app_id": "a", "name": "A"}],\n'
            '  "routing_rules": [{"app_id": "a", "keywords": ["Alpha", ""]}]\n'
            '}\n',
            encoding="utf-8",
        )
        catalog = load_app_catalog(path)

        assert catalog.routing_rules == [("a", ("alpha",))]
        assert catalog.match("ALPHA please") == "a"
        assert catalog.apps[0].description == ""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_app_catalog(tmp_path / "nope.jsonc")

    @pytest.mark.parametrize(
        "data",
        [
            {"default_app_id": "a"},
            {"apps": []},
            {"apps": [], "default_app_id": "  "},
            [],
        ],
    )
    def test_invalid_catalog(self, data):
        with pytest.raises(ValueError):
            AppCatalog.from_dict(data)


class TestRuleRouting:
    @pytest.mark.parametrize(
        "question, expected",
        [
            ("이더리움 보내는 방법", ETHEREUM),
            ("How do I send ETH?", ETHEREUM),
            ("비트코인 잔액 확인", BITCOIN),
            ("BTC 주소 복사", BITCOIN),
            ("이락코인 송금하기", BITCOIN),
            ("본미디어 기사 저장", BONMEDIA),
            ("부산일보 구독", BUSAN),
        ],
    )
    def test_rule_match_skips_llm(self, catalog, question, expected):
        completer = FakeCompleter(["com.anam.should.not.be.used"])
        assert AppResolver(completer, catalog).resolve(question) == expected
        assert completer.calls == []

    def test_earlier_rule_wins(self, catalog):
        # both the ethereum and bitcoin rules match
        assert AppResolver(FakeCompleter(), catalog).resolve("eth를 btc로 바꾸기") == ETHEREUM


class TestLlmFallback:
    def test_llm_answer_sanitized(self, catalog):
        completer = FakeCompleter([f'"{ETHEREUM}" because the user wants ether'])
        assert AppResolver(completer, catalog).resolve("코인 받기") == ETHEREUM

        [call] = completer.calls
        assert BITCOIN in call["system"]
        assert "Bitcoin Wallet" in call["system"]
        assert "코인 받기" in call["user"]

    def test_backticked_answer(self, catalog):
        completer = FakeCompleter([f"`{BUSAN}`\n"])
        assert AppResolver(completer, catalog).resolve("지역 소식") == BUSAN

    @pytest.mark.parametrize("response", [None, "", "   \n", RuntimeError("LLM down")])
    def test_unusable_answer_falls_back_to_default(self, catalog, response):
        completer = FakeCompleter([response])
        assert AppResolver(completer, catalog).resolve("코인 받기") == BITCOIN

    def test_unknown_app_id_is_kept_with_warning(self, catalog, caplog):
        completer = FakeCompleter(["com.example.other"])
        with caplog.at_level(logging.WARNING, logger="miniapp_guide"):
            assert AppResolver(completer, catalog).resolve("코인 받기") == "com.example.other"
        assert "outside the catalog" in caplog.text
