"""Tests for the source registry and the built-in remote source defaults."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from barcode_cache.core.errors import FatalConfigurationError
from barcode_cache.sources.alma import AlmaSource
from barcode_cache.sources.defaults import (
    create_default_registry,
    create_remote_source,
    resolve_source_name,
)
from barcode_cache.sources.random_source import RandomSource
from barcode_cache.sources.registry import SourceRegistry
from tests.fakes.sources import FakeRemoteSource


class TestSourceRegistry:
    def test_factory_gets_remote_config(self):
        seen = {}

        def factory(cfg):
            seen.update(cfg)
            return FakeRemoteSource()

        reg = SourceRegistry()
        reg.register("fake", factory)
        assert isinstance(reg.create("fake", {"timeout_s": 5}), FakeRemoteSource)
        assert seen == {"timeout_s": 5}

    def test_instance_returned_as_is(self):
        inst = FakeRemoteSource()
        reg = SourceRegistry()
        reg.register("stub", inst)
        assert reg.create("stub") is inst

    def test_class_instantiated(self):
        reg = SourceRegistry()
        reg.register("stub", FakeRemoteSource)
        assert isinstance(reg.create("stub"), FakeRemoteSource)

    def test_names_case_insensitive(self):
        reg = SourceRegistry()
        reg.register("Alma", FakeRemoteSource)
        assert "alma" in reg
        assert "ALMA" in reg
        assert reg.names == ["alma"]

    def test_unknown_is_fatal(self):
        with pytest.raises(FatalConfigurationError, match="Unknown remote source"):
            SourceRegistry().create("nope")


class TestDefaults:
    def test_default_registry(self):
        reg = create_default_registry()
        assert "alma" in reg and "random" in reg

    @pytest.mark.parametrize(
        "cfg,expected",
        [
            ({"source": "auto", "api_key": "k"}, "alma"),
            ({"source": "auto", "api_key": ""}, "random"),
            ({}, "random"),
            ({"source": "none", "api_key": "k"}, None),
            ({"source": "Random", "api_key": "k"}, "random"),
            ({"source": "alma"}, "alma"),
        ],
    )
    def test_resolve_source_name(self, cfg, expected):
        assert resolve_source_name(cfg) == expected

    def test_create_alma_with_key(self):
        src = create_remote_source({"remote": {"source": "auto", "api_key": "k", "timeout_s": 3}})
        assert isinstance(src, AlmaSource)

    def test_alma_without_key_is_fatal(self):
        with pytest.raises(FatalConfigurationError):
            create_remote_source({"remote": {"source": "alma", "api_key": ""}})

    def test_create_random_without_key(self):
        src = create_remote_source({"remote": {"source": "auto"}})
        assert isinstance(src, RandomSource)

    def test_none_disables_remote(self):
        assert create_remote_source({"remote": {"source": "none"}}) is None

    def test_custom_registry_and_initialize(self):
        fake = FakeRemoteSource()
        reg = SourceRegistry()
        reg.register("fake", fake)
        src = create_remote_source({"remote": {"source": "fake", "api_key": "abc"}}, registry=reg)
        assert src is fake
        assert fake.initialized_with == "abc"


class TestRandomSource:
    def test_shape(self):
        rec = RandomSource(seed=7).lookup("666")
        assert rec is not None
        assert rec.barcode == "666"
        n = rec.isbn[len("ISBN"):]
        assert rec.isbn == f"ISBN{n}"
        assert rec.author == f"Author{n}"
        assert rec.title == f"Title{n}"

    def test_seeded_is_deterministic(self):
        assert RandomSource(seed=1).lookup("a") == RandomSource(seed=1).lookup("a")

    def test_seed_from_config(self):
        a = create_remote_source({"remote": {"source": "random", "seed": 3}})
        b = create_remote_source({"remote": {"source": "random", "seed": 3}})
        assert a.lookup("x") == b.lookup("x")
