import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from smart_coordinator.coordinator import FAILURE_MESSAGES, SmartCoordinator
from smart_coordinator.exceptions import SpecialistInvocationError
from smart_coordinator.models import CanonicalResponse, CoordinatorConfig, CoordinatorStage, RoutingDecision
from smart_coordinator.normalizer import ResponseNormalizer
from smart_coordinator.request_builder import RequestBuilder
from smart_coordinator.router import KeywordRouter
from tests.mock_static_config import COORDINATOR_CONFIG

# Mark all tests in this file as asyncio
pytestmark = pytest.mark.asyncio


@pytest.fixture
def config():
    return CoordinatorConfig.model_validate(COORDINATOR_CONFIG)


@pytest.fixture
def invoker():
    mock = MagicMock()
    mock.invoke = AsyncMock()
    return mock


def make_coordinator(config, invoker, router=None):
    return SmartCoordinator(
        config=config,
        router=router or KeywordRouter(config),
        request_builder=RequestBuilder(),
        normalizer=ResponseNormalizer(parse_failure_status=config.parse_failure_status),
        invoker=invoker,
    )


async def test_salary_question_end_to_end(config, invoker):
    invoker.invoke.return_value = '{"status":"ok","response":"**Gross Salary:** $5,000"}'

    response = await make_coordinator(config, invoker).handle("What is my gross salary?")

    assert response == CanonicalResponse(status="ok", response="**Gross Salary:** $5,000", data={}, entities={})
    request = invoker.invoke.call_args.args[0]
    assert request.specialist == "payroll"
    assert request.text.endswith("User's original query: What is my gross salary?")


async def test_plain_text_reply_is_degraded_not_rejected(config, invoker):
    invoker.invoke.return_value = "Sorry, I don't know."

    response = await make_coordinator(config, invoker).handle("What is my gross salary?")

    assert response == CanonicalResponse(status="ok", response="Sorry, I don't know.", data={}, entities={})


async def test_undecodably_nested_reply_is_degraded_not_failed(config, invoker):
    reply = '{"response": ' + "[" * 100000
    invoker.invoke.return_value = reply

    response = await make_coordinator(config, invoker).handle("What is my gross salary?")

    assert response.status == "ok"
    assert response.response == reply


async def test_plain_text_reply_with_error_policy(config, invoker):
    strict = config.model_copy(update={"parse_failure_status": "error"})
    invoker.invoke.return_value = "Sorry, I don't know."

    response = await make_coordinator(strict, invoker).handle("What is my gross salary?")

    assert response.status == "error"
    assert response.response == "Sorry, I don't know."


async def test_structured_reply_passes_through(config, invoker):
    invoker.invoke.return_value = {
        "response": "You have **12** vacation days left.",
        "data": {"remaining_days": 12},
        "entities": {"leave_type": "vacation"},
    }

    response = await make_coordinator(config, invoker).handle("How many vacation days do I have?")

    assert response.status == "ok"
    assert response.data == {"remaining_days": 12}
    assert response.entities == {"leave_type": "vacation"}
    assert invoker.invoke.call_args.args[0].specialist == "benefits"


async def test_invocation_failure_becomes_error_response(config, invoker):
    invoker.invoke.side_effect = SpecialistInvocationError("payroll", "connection refused")

    response = await make_coordinator(config, invoker).handle("What is my gross salary?")

    assert response.status == "error"
    assert response.response.startswith(FAILURE_MESSAGES[CoordinatorStage.INVOKE])
    assert response.data == {}
    assert response.entities == {}


async def test_unsupported_result_shape_becomes_error_response(config, invoker):
    invoker.invoke.return_value = 42

    response = await make_coordinator(config, invoker).handle("What is my gross salary?")

    assert response.status == "error"
    assert response.response.startswith(FAILURE_MESSAGES[CoordinatorStage.NORMALIZE])


async def test_blank_query_fails_at_routing(config, invoker):
    response = await make_coordinator(config, invoker).handle("   ")

    assert response.status == "error"
    assert response.response.startswith(FAILURE_MESSAGES[CoordinatorStage.ROUTE])
    invoker.invoke.assert_not_called()


async def test_decision_without_query_fails_at_build(config, invoker):
    router = MagicMock()
    router.route.return_value = RoutingDecision(specialist="payroll", payload={"specialist": "payroll"})

    response = await make_coordinator(config, invoker, router=router).handle("What is my gross salary?")

    assert response.status == "error"
    assert response.response.startswith(FAILURE_MESSAGES[CoordinatorStage.BUILD_REQUEST])
    invoker.invoke.assert_not_called()


async def test_unexpected_exception_does_not_escape(config, invoker):
    invoker.invoke.side_effect = RuntimeError("boom")

    response = await make_coordinator(config, invoker).handle("What is my gross salary?")

    assert response.status == "error"
    assert "boom" not in response.response


async def test_slow_specialist_times_out(config):
    async def slow_invoke(request, correlation_id):
        await asyncio.sleep(5)

    invoker = MagicMock()
    invoker.invoke = slow_invoke
    fast = config.model_copy(update={"request_timeout": 0.05})

    response = await make_coordinator(fast, invoker).handle("What is my gross salary?")

    assert response.status == "error"
    assert response.response.startswith(FAILURE_MESSAGES[CoordinatorStage.INVOKE])


async def test_cancellation_propagates(config):
    started = asyncio.Event()

    async def hanging_invoke(request, correlation_id):
        started.set()
        await asyncio.sleep(5)

    invoker = MagicMock()
    invoker.invoke = hanging_invoke

    task = asyncio.create_task(make_coordinator(config, invoker).handle("What is my gross salary?"))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task


async def test_concurrent_requests_do_not_share_state(config, invoker):
    async def echo(request, correlation_id):
        await asyncio.sleep(0)
        return {"response": request.text.rsplit(": ", 1)[1]}

    invoker.invoke.side_effect = echo
    coordinator = make_coordinator(config, invoker)
    queries = [f"What is my gross salary in month {n}?" for n in range(5)]

    responses = await asyncio.gather(*(coordinator.handle(q) for q in queries))

    assert [r.response for r in responses] == queries


async def test_from_config_wires_default_collaborators(config):
    coordinator = SmartCoordinator.from_config(config)
    try:
        assert coordinator.config is config
        assert isinstance(coordinator._router, KeywordRouter)
        assert coordinator._normalizer.parse_failure_status == "ok"
    finally:
        await coordinator.aclose()
