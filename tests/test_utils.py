"""Tests for blocksync.utils: hashing and logging helpers."""

import logging

from blocksync.utils import get_logger, hash_str, source_fingerprint


class TestHashing:
    def test_known_digest(self) -> None:
        assert hash_str("hello world", truncate=16) == "b94d27b9934d3e08"

    def test_full_length(self) -> None:
        assert len(hash_str("x")) == 64
        assert len(hash_str("x", algorithm="md5")) == 32

    def test_fingerprint(self) -> None:
        assert source_fingerprint("[1]") == hash_str("[1]", truncate=16)
        assert source_fingerprint("[1]") != source_fingerprint("[1] ")


class TestLogger:
    def test_prefix(self) -> None:
        assert get_logger("mymodule").name == "blocksync.mymodule"

    def test_package_names_unchanged(self) -> None:
        assert get_logger("blocksync.session").name == "blocksync.session"
        assert get_logger("blocksync").name == "blocksync"

    def test_no_handlers_installed(self) -> None:
        assert get_logger("blocksync.patcher").handlers == []

    def test_patch_fallback_is_logged(self, caplog) -> None:  # type: ignore[no-untyped-def]
        from blocksync import build, patch_text, reconcile

        text_model, live = build("[1]"), build("[1]")
        live.create_node(text_model.root.type)  # type: ignore[union-attr]
        with caplog.at_level(logging.INFO, logger="blocksync"):
            patch_text("[1]", text_model, live, reconcile(text_model, live))
        assert any("Regenerating" in record.getMessage() for record in caplog.records)
