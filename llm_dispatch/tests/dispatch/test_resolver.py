"""Resolution precedence, parameter layering and fallback ordering."""
from __future__ import annotations

import pytest

from llm_dispatch.base.errors import ConfigurationError, ErrorCode
from llm_dispatch.base.models import CallRequest, TaskRoute
from llm_dispatch.dispatch import ConfigResolver, merge_parameters

from ..fakes import MemoryStore, make_provider, user


def _store() -> MemoryStore:
    return MemoryStore(
        providers=[
            make_provider("a", sort_order=0, models=("a-1", "a-2"), parameters={"temperature": 0.1, "max_tokens": 100}),
            make_provider("b", sort_order=1, is_default=True, models=("b-1",)),
            make_provider("c", sort_order=2, models=()),
            make_provider("d", sort_order=3, is_enabled=False),
        ],
        routes=[
            TaskRoute(task_name="resume_analysis", provider_id="a", model="a-2", parameters={"temperature": 0.7}),
            TaskRoute(task_name="question_generation", model="b-special", parameters={"top_p": 0.9}),
            TaskRoute(task_name="orphan", provider_id="ghost"),
        ],
    )


def test_merge_parameters_right_wins():
    assert merge_parameters({"a": 1, "b": 1}, None, {"b": 2}, {"c": 3}) == {"a": 1, "b": 2, "c": 3}  # nosec B101


def test_explicit_provider_wins_over_route_and_default():
    store = _store()
    target = ConfigResolver(store).resolve(
        CallRequest(messages=user(), provider_id="a", task_name="question_generation")
    )
    assert target.provider_id == "a" and target.model == "a-1"  # nosec B101
    assert target.parameters == {"temperature": 0.1, "max_tokens": 100}  # nosec B101
    assert store.route_reads == 0  # nosec B101


def test_explicit_missing_provider_never_consults_routes_or_default():
    store = _store()
    with pytest.raises(ConfigurationError) as ei:
        ConfigResolver(store).resolve(CallRequest(messages=user(), provider_id="x", task_name="resume_analysis"))
    assert ei.value.code is ErrorCode.NOT_FOUND  # nosec B101
    assert store.route_reads == 0 and store.default_reads == 0  # nosec B101


def test_explicit_disabled_provider_is_rejected():
    with pytest.raises(ConfigurationError):
        ConfigResolver(_store()).resolve(CallRequest(messages=user(), provider_id="d"))


def test_task_route_layers_parameters_and_model():
    target = ConfigResolver(_store()).resolve(
        CallRequest(messages=user(), task_name="resume_analysis", parameters={"max_tokens": 5})
    )
    assert target.provider_id == "a" and target.model == "a-2"  # nosec B101
    assert target.parameters == {"temperature": 0.7, "max_tokens": 5}  # nosec B101


def test_request_model_beats_route_model():
    target = ConfigResolver(_store()).resolve(
        CallRequest(messages=user(), task_name="resume_analysis", model="a-override")
    )
    assert target.model == "a-override"  # nosec B101


def test_route_without_provider_uses_default_with_route_model():
    target = ConfigResolver(_store()).resolve(CallRequest(messages=user(), task_name="question_generation"))
    assert target.provider_id == "b" and target.model == "b-special"  # nosec B101
    assert target.parameters == {"top_p": 0.9}  # nosec B101


def test_route_to_missing_provider_is_configuration_error():
    with pytest.raises(ConfigurationError):
        ConfigResolver(_store()).resolve(CallRequest(messages=user(), task_name="orphan"))


def test_unknown_task_falls_back_to_default():
    target = ConfigResolver(_store()).resolve(CallRequest(messages=user(), task_name="unknown_task"))
    assert target.provider_id == "b"  # nosec B101


def test_first_enabled_provider_when_no_default():
    store = MemoryStore(providers=[make_provider("z", sort_order=5), make_provider("y", sort_order=1)])
    assert ConfigResolver(store).resolve(CallRequest(messages=user())).provider_id == "y"  # nosec B101


def test_nothing_configured():
    with pytest.raises(ConfigurationError):
        ConfigResolver(MemoryStore()).resolve(CallRequest(messages=user()))
    store = MemoryStore(providers=[make_provider("a", models=())])
    with pytest.raises(ConfigurationError):
        ConfigResolver(store).resolve(CallRequest(messages=user()))


def test_task_routes_are_cached_until_cleared():
    store = _store()
    resolver = ConfigResolver(store)
    request = CallRequest(messages=user(), task_name="resume_analysis")
    resolver.resolve(request)
    resolver.resolve(request)
    assert store.route_reads == 1  # nosec B101

    store.routes["resume_analysis"] = TaskRoute(task_name="resume_analysis", provider_id="b")
    resolver.clear_task_cache("resume_analysis")
    assert resolver.resolve(request).provider_id == "b"  # nosec B101


def test_fallback_candidates_skip_failed_disabled_and_modelless():
    resolver = ConfigResolver(_store())
    request = CallRequest(messages=user(), parameters={"temperature": 0.3})
    candidates = resolver.fallback_candidates(request, "b")
    assert [(t.provider_id, t.model) for t in candidates] == [("a", "a-1")]  # nosec B101
    assert candidates[0].parameters == {"temperature": 0.3, "max_tokens": 100}  # nosec B101


def test_fallback_candidates_use_request_model_when_given():
    resolver = ConfigResolver(_store())
    request = CallRequest(messages=user(), model="shared-model")
    assert [(t.provider_id, t.model) for t in resolver.fallback_candidates(request, "a")] == [  # nosec B101
        ("b", "shared-model"),
        ("c", "shared-model"),
    ]
