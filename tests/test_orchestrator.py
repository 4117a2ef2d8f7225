from __future__ import annotations

import asyncio

import pytest

from models.detection import Provenance
from models.session_models import JobState
from services.realtime.errors import MalformedMessage, Unauthenticated
from tests.fakes import FailingProvider, FakeTransport, GatedProvider, StallingTransport, build_orchestrator, wait_for


def _assert_progress_sequence(values: list[int], step: int = 10, ceiling: int = 90) -> None:
    assert values == sorted(set(values))
    assert all(value % step == 0 for value in values)
    assert all(0 < value <= ceiling for value in values)


def test_realtime_job_message_order() -> None:
    async def scenario() -> FakeTransport:
        provider = GatedProvider()
        orchestrator = build_orchestrator(provider)
        transport = FakeTransport()
        connection_id = await orchestrator.open_connection(transport)
        await orchestrator.authenticate(connection_id, "u1")
        job_id = await orchestrator.submit_realtime(connection_id, "img1")
        job = orchestrator.correlator.get(job_id)

        await wait_for(lambda: job.progress >= 30)
        provider.gate.set()
        await wait_for(lambda: orchestrator.active_jobs == 0)
        assert job.state is JobState.COMPLETED
        return transport

    transport = asyncio.run(scenario())

    types = transport.types()
    assert types[:3] == ["welcome", "authentication_response", "analysis_request_received"]
    assert types[-1] == "analysis_results"
    assert types.count("analysis_results") == 1
    assert set(types[3:-1]) == {"analysis_progress"}

    assert transport.of_type("authentication_response") == [{"success": True, "userId": "u1"}]
    ack = transport.of_type("analysis_request_received")[0]
    assert ack["status"] == "pending" and ack["imageId"] == "img1" and ack["success"] is True
    analysis_id = ack["analysisId"]

    progress = transport.of_type("analysis_progress")
    assert all(tick["analysisId"] == analysis_id and tick["imageId"] == "img1" for tick in progress)
    _assert_progress_sequence([tick["progress"] for tick in progress])

    result = transport.of_type("analysis_results")[0]
    assert result["analysisId"] == analysis_id
    assert result["status"] == "completed"
    assert result["detection"] == {
        "name": "Black Sigatoka",
        "scientificName": "Mycosphaerella fijiensis",
        "confidence": 88,
        "severity": "High",
        "description": "Dark streaks on the leaf surface.",
    }
    assert result["treatments"] == ["Remove infected leaves"]
    assert len(result["preventionTips"]) == 4


def test_progress_stops_at_ceiling_while_detection_is_slow() -> None:
    async def scenario() -> FakeTransport:
        provider = GatedProvider()
        orchestrator = build_orchestrator(provider, tick=0.005)
        transport = FakeTransport()
        connection_id = await orchestrator.open_connection(transport)
        await orchestrator.submit_realtime(connection_id, "img-slow", user_id="u1")
        await wait_for(lambda: len(transport.of_type("analysis_progress")) == 9)
        # Several more periods pass without any new tick.
        await asyncio.sleep(0.05)
        provider.gate.set()
        await wait_for(lambda: orchestrator.active_jobs == 0)
        return transport

    transport = asyncio.run(scenario())
    values = [tick["progress"] for tick in transport.of_type("analysis_progress")]
    assert values == [10, 20, 30, 40, 50, 60, 70, 80, 90]
    assert transport.types()[-1] == "analysis_results"


def test_emitter_released_after_completion() -> None:
    async def scenario():
        provider = GatedProvider()
        orchestrator = build_orchestrator(provider)
        transport = FakeTransport()
        connection_id = await orchestrator.open_connection(transport)
        await orchestrator.submit_realtime(connection_id, "img1", user_id="u1")
        assert orchestrator.active_emitters == 1
        provider.gate.set()
        await wait_for(lambda: orchestrator.active_jobs == 0)
        return orchestrator

    orchestrator = asyncio.run(scenario())
    assert orchestrator.active_emitters == 0
    handle = orchestrator.emitter.handles[0]
    assert handle.cancelled and handle.done


def test_unauthenticated_request_gets_error_and_creates_no_job() -> None:
    async def scenario():
        orchestrator = build_orchestrator(GatedProvider())
        transport = FakeTransport()
        connection_id = await orchestrator.open_connection(transport)
        with pytest.raises(Unauthenticated) as excinfo:
            await orchestrator.submit_realtime(connection_id, "img1")
        return orchestrator, transport, excinfo.value

    orchestrator, transport, error = asyncio.run(scenario())
    assert str(error) == "Not authenticated"
    assert transport.types() == ["welcome"]
    assert orchestrator.active_jobs == 0
    assert orchestrator.emitter.handles == []


def test_inline_user_id_is_enough_to_submit() -> None:
    async def scenario():
        provider = GatedProvider()
        orchestrator = build_orchestrator(provider)
        transport = FakeTransport()
        connection_id = await orchestrator.open_connection(transport)
        job_id = await orchestrator.submit_realtime(connection_id, "img9", user_id="inline-user")
        owner = orchestrator.correlator.get(job_id).owner_id
        provider.gate.set()
        await wait_for(lambda: orchestrator.active_jobs == 0)
        return owner

    assert asyncio.run(scenario()) == "inline-user"


def test_connection_closed_before_detection_abandons_job() -> None:
    async def scenario():
        provider = GatedProvider()
        orchestrator = build_orchestrator(provider)
        transport = FakeTransport()
        connection_id = await orchestrator.open_connection(transport)
        await orchestrator.authenticate(connection_id, "u1")
        job_id = await orchestrator.submit_realtime(connection_id, "img1")
        job = orchestrator.correlator.get(job_id)
        await wait_for(lambda: job.progress >= 20)

        transport.close()
        await orchestrator.close_connection(connection_id)
        assert orchestrator.active_emitters == 0
        sent_at_close = len(transport.sent)

        provider.gate.set()
        await wait_for(lambda: orchestrator.active_jobs == 0)
        return orchestrator, transport, job, sent_at_close

    orchestrator, transport, job, sent_at_close = asyncio.run(scenario())
    assert job.state is JobState.ABANDONED
    assert "analysis_results" not in transport.types()
    assert len(transport.sent) == sent_at_close
    assert orchestrator.emitter.handles[0].cancelled
    # Abandoned jobs are not recorded.
    assert len(orchestrator.store) == 0


def test_transport_dropping_without_unregister_still_abandons() -> None:
    async def scenario():
        provider = GatedProvider()
        orchestrator = build_orchestrator(provider)
        transport = FakeTransport()
        connection_id = await orchestrator.open_connection(transport)
        job_id = await orchestrator.submit_realtime(connection_id, "img1", user_id="u1")
        job = orchestrator.correlator.get(job_id)
        transport.close()
        provider.gate.set()
        await wait_for(lambda: orchestrator.active_jobs == 0)
        return orchestrator, transport, job

    orchestrator, transport, job = asyncio.run(scenario())
    assert job.state is JobState.ABANDONED
    assert transport.types() == ["welcome", "analysis_request_received"]
    assert orchestrator.active_emitters == 0


def test_two_connections_get_distinct_jobs_without_cross_talk() -> None:
    async def scenario():
        provider = GatedProvider()
        orchestrator = build_orchestrator(provider)
        first, second = FakeTransport(), FakeTransport()
        first_id = await orchestrator.open_connection(first)
        second_id = await orchestrator.open_connection(second)
        await orchestrator.authenticate(first_id, "alice")
        await orchestrator.authenticate(second_id, "bob")
        job_ids = await asyncio.gather(
            orchestrator.submit_realtime(first_id, "img-a"),
            orchestrator.submit_realtime(second_id, "img-b"),
        )
        await wait_for(lambda: all(orchestrator.correlator.get(j).progress >= 20 for j in job_ids))
        provider.gate.set()
        await wait_for(lambda: orchestrator.active_jobs == 0)
        return job_ids, first, second

    (first_job, second_job), first, second = asyncio.run(scenario())
    assert first_job != second_job
    for transport, job_id, image_id in ((first, first_job, "img-a"), (second, second_job, "img-b")):
        payloads = [m["data"] for m in transport.sent if "analysisId" in m["data"]]
        assert payloads
        assert {p["analysisId"] for p in payloads} == {job_id}
        assert {p["imageId"] for p in payloads} == {image_id}
        assert transport.types().count("analysis_results") == 1


def test_authenticate_rebinds_identity() -> None:
    async def scenario():
        orchestrator = build_orchestrator(GatedProvider())
        transport = FakeTransport()
        connection_id = await orchestrator.open_connection(transport)
        await orchestrator.authenticate(connection_id, "u1")
        await orchestrator.authenticate(connection_id, "u1")
        await orchestrator.authenticate(connection_id, "u2")
        with pytest.raises(MalformedMessage):
            await orchestrator.authenticate(connection_id, None)
        return orchestrator.registry.identity_of(connection_id), transport

    identity, transport = asyncio.run(scenario())
    assert identity == "u2"
    assert [d["userId"] for d in transport.of_type("authentication_response")] == ["u1", "u1", "u2"]


def test_inline_analysis_falls_back_when_provider_fails() -> None:
    async def scenario():
        orchestrator = build_orchestrator(FailingProvider())
        envelope = await orchestrator.submit_inline("https://cdn.example.com/uploads/leaf-7.jpg", "u1")
        return orchestrator, envelope

    orchestrator, envelope = asyncio.run(scenario())
    detection = envelope.detections[0]
    assert detection.provenance is Provenance.FALLBACK
    assert envelope.processing_time >= 0

    body = envelope.to_dict()
    assert body["success"] is True
    assert body["analysisId"] == envelope.analysis_id
    assert body["results"]["detections"][0]["source"] == "fallback"
    assert body["results"]["timestamp"]

    record = orchestrator.store.get(envelope.analysis_id)
    assert record.image_id == "leaf-7.jpg"
    assert record.user_id == "u1"


def test_inline_analysis_rejects_empty_image_url() -> None:
    orchestrator = build_orchestrator(FailingProvider())
    with pytest.raises(ValueError):
        asyncio.run(orchestrator.submit_inline("  ", "u1"))


def test_list_recent_returns_demo_scans_until_something_is_stored() -> None:
    orchestrator = build_orchestrator(FailingProvider())
    demo = orchestrator.list_recent()
    assert [scan["id"] for scan in demo] == ["mock-1", "mock-2"]

    envelope = asyncio.run(orchestrator.submit_inline("https://x.test/a/b.png", "u1"))
    scans = orchestrator.list_recent("u1")
    assert [scan["id"] for scan in scans] == [envelope.analysis_id]
    assert orchestrator.list_recent("someone-else") == []


def test_list_recent_without_demo_is_empty() -> None:
    orchestrator = build_orchestrator(FailingProvider(), demo=False)
    assert orchestrator.list_recent() == []


def test_realtime_results_show_up_in_recent_scans() -> None:
    async def scenario():
        provider = GatedProvider()
        orchestrator = build_orchestrator(provider)
        connection_id = await orchestrator.open_connection(FakeTransport())
        job_id = await orchestrator.submit_realtime(connection_id, "img1", user_id="u1")
        provider.gate.set()
        await wait_for(lambda: orchestrator.active_jobs == 0)
        return orchestrator, job_id

    orchestrator, job_id = asyncio.run(scenario())
    scans = orchestrator.list_recent("u1")
    assert scans[0]["id"] == job_id
    assert scans[0]["disease"] == "Black Sigatoka"
    assert scans[0]["confidence"] == 88


def test_save_analysis_notifies_only_that_users_connections() -> None:
    async def scenario():
        orchestrator = build_orchestrator(GatedProvider())
        mine, theirs = FakeTransport(), FakeTransport()
        mine_id = await orchestrator.open_connection(mine)
        theirs_id = await orchestrator.open_connection(theirs)
        await orchestrator.authenticate(mine_id, "u1")
        await orchestrator.authenticate(theirs_id, "u2")
        first = await orchestrator.save_analysis("a-1", "img-1", {"name": "Panama Disease"}, user_id="u1")
        again = await orchestrator.save_analysis("a-1", "img-1", {"name": "Panama Disease"}, user_id="u1")
        return first, again, mine, theirs

    first, again, mine, theirs = asyncio.run(scenario())
    assert first is True and again is False
    assert mine.of_type("analysis_saved") == [{"analysisId": "a-1", "imageId": "img-1"}]
    assert theirs.of_type("analysis_saved") == []


def test_shutdown_cancels_running_jobs() -> None:
    async def scenario():
        provider = GatedProvider()
        orchestrator = build_orchestrator(provider)
        connection_id = await orchestrator.open_connection(FakeTransport())
        job_id = await orchestrator.submit_realtime(connection_id, "img1", user_id="u1")
        job = orchestrator.correlator.get(job_id)
        await orchestrator.shutdown()
        return orchestrator, job

    orchestrator, job = asyncio.run(scenario())
    assert orchestrator.active_jobs == 0
    assert orchestrator.active_emitters == 0
    assert job.state is JobState.ABANDONED


def test_shutdown_during_result_send_keeps_job_completed() -> None:
    async def scenario():
        provider = GatedProvider()
        orchestrator = build_orchestrator(provider)
        transport = StallingTransport("analysis_results")
        connection_id = await orchestrator.open_connection(transport)
        job_id = await orchestrator.submit_realtime(connection_id, "img1", user_id="u1")
        job = orchestrator.correlator.get(job_id)
        provider.gate.set()
        await wait_for(transport.stalled.is_set)
        assert job.state is JobState.COMPLETED
        await orchestrator.shutdown()
        return orchestrator, job

    orchestrator, job = asyncio.run(scenario())
    assert job.state is JobState.COMPLETED
    assert len(orchestrator.store) == 1
    assert orchestrator.active_jobs == 0
    assert len(orchestrator.correlator) == 0
