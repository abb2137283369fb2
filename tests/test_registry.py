from unittest.mock import AsyncMock, MagicMock

import pytest

from analyst.db import StatsDatabase
from analyst.errors import DataAccessError, DuplicateNameError, InvalidArgumentError, UnknownFunctionError
from analyst.functions.catalog import load_catalog
from analyst.functions.registry import FunctionRegistry, build_registry
from analyst.models import FunctionCallRequest, NotFound
from analyst.store import DataStoreAccessor


def _registry_with_mock_handlers() -> tuple[FunctionRegistry, dict[str, AsyncMock]]:
    registry = FunctionRegistry()
    handlers: dict[str, AsyncMock] = {}
    for spec in load_catalog():
        handler = AsyncMock(return_value={"ok": spec.name})
        handlers[spec.name] = handler
        registry.register(spec, handler)
    return registry, handlers


def test_schema_for_model_matches_registered_specs():
    registry, _ = _registry_with_mock_handlers()

    schema = registry.schema_for_model()

    specs = load_catalog()
    assert [entry["function"]["name"] for entry in schema] == [spec.name for spec in specs]
    for entry, spec in zip(schema, specs):
        params = entry["function"]["parameters"]
        assert set(params["properties"]) == set(spec.parameters)
        for name, param in spec.parameters.items():
            assert params["properties"][name]["type"] == param.type
            assert (name in params["required"]) == param.required


def test_schema_for_model_returns_fresh_structures():
    registry, _ = _registry_with_mock_handlers()

    first = registry.schema_for_model()
    first[0]["function"]["name"] = "tampered"
    first[0]["function"]["parameters"]["required"].clear()

    second = registry.schema_for_model()
    assert second[0]["function"]["name"] == "get_team_insights"
    assert second[0]["function"]["parameters"]["required"] == ["team_name"]


def test_register_duplicate_name_fails():
    registry = FunctionRegistry()
    spec = load_catalog()[0]
    registry.register(spec, AsyncMock())

    with pytest.raises(DuplicateNameError):
        registry.register(spec, AsyncMock())
    assert len(registry) == 1


@pytest.mark.asyncio
async def test_dispatch_unknown_function_never_calls_a_handler():
    registry, handlers = _registry_with_mock_handlers()

    with pytest.raises(UnknownFunctionError):
        await registry.dispatch(FunctionCallRequest(name="get_transfer_rumours", arguments={"team_name": "X"}))

    for handler in handlers.values():
        handler.assert_not_awaited()


@pytest.mark.asyncio
async def test_dispatch_missing_required_argument_names_parameter():
    registry, handlers = _registry_with_mock_handlers()

    with pytest.raises(InvalidArgumentError) as exc_info:
        await registry.dispatch(FunctionCallRequest(name="get_team_insights", arguments={}))

    assert exc_info.value.parameter == "team_name"
    assert "team_name" in str(exc_info.value)
    handlers["get_team_insights"].assert_not_awaited()


@pytest.mark.asyncio
async def test_dispatch_rejects_wrong_types_without_coercion():
    registry, handlers = _registry_with_mock_handlers()

    with pytest.raises(InvalidArgumentError) as exc_info:
        await registry.dispatch(FunctionCallRequest(name="get_team_swot", arguments={"team_name": 42}))
    assert exc_info.value.parameter == "team_name"

    with pytest.raises(InvalidArgumentError) as exc_info:
        await registry.dispatch(
            FunctionCallRequest(name="get_match_history", arguments={"team_name": "Lansdowne", "limit": "5"})
        )
    assert exc_info.value.parameter == "limit"
    assert "integer" in exc_info.value.reason

    handlers["get_team_swot"].assert_not_awaited()
    handlers["get_match_history"].assert_not_awaited()


@pytest.mark.asyncio
async def test_dispatch_passes_validated_arguments_to_handler():
    registry, handlers = _registry_with_mock_handlers()

    result = await registry.dispatch(
        FunctionCallRequest(name="get_match_history", arguments={"team_name": "Lansdowne", "season": 2024})
    )

    assert result == {"ok": "get_match_history"}
    handlers["get_match_history"].assert_awaited_once_with({"team_name": "Lansdowne"})


@pytest.mark.asyncio
async def test_dispatch_propagates_data_access_error():
    registry = FunctionRegistry()
    registry.register(load_catalog()[0], AsyncMock(side_effect=DataAccessError("store down")))

    with pytest.raises(DataAccessError):
        await registry.dispatch(FunctionCallRequest(name="get_team_insights", arguments={"team_name": "Lansdowne"}))


@pytest.mark.asyncio
async def test_build_registry_binds_categories_to_accessor(tmp_path):
    db = StatsDatabase(tmp_path / "analytics.db")
    db.initialize()
    db.upsert_team("Lansdowne", "Leinster Senior League", ["Pace"], ["Set pieces"], 65, 26)
    registry = build_registry(load_catalog(), DataStoreAccessor(db, timeout_seconds=5))

    insights = await registry.dispatch(
        FunctionCallRequest(name="get_team_insights", arguments={"team_name": "Lansdowne"})
    )
    history = await registry.dispatch(
        FunctionCallRequest(name="get_match_history", arguments={"team_name": "Lansdowne", "limit": 3})
    )
    missing = await registry.dispatch(
        FunctionCallRequest(name="get_league_standings", arguments={"league_name": "Nowhere"})
    )

    assert insights["goal_stats"]["scored"] == 65
    assert history == {"team_name": "Lansdowne", "matches": []}
    assert missing == NotFound("Nowhere")


@pytest.mark.asyncio
async def test_invalid_call_never_reaches_the_store():
    db = MagicMock()
    registry = build_registry(load_catalog(), DataStoreAccessor(db, timeout_seconds=5))

    with pytest.raises(InvalidArgumentError):
        await registry.dispatch(FunctionCallRequest(name="get_team_swot", arguments={"name": "Lansdowne"}))

    assert db.method_calls == []
