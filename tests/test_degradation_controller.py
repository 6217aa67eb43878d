import threading

import pytest

from perfbudget.budgets.degradation import MANUAL_SOURCE, DegradationController
from perfbudget.budgets.models import DegradationLevel


@pytest.fixture
def controller(clock):
    return DegradationController(clock=clock)


def test_engage_and_release_single_budget(controller, clock):
    assert controller.engage("LCP", ["reduce-images"]) is True
    state = controller.state()
    assert state.is_active is True
    assert state.level is DegradationLevel.LIGHT
    assert state.active_strategies == ("reduce-images",)
    assert state.activated_at == clock.now
    assert "LCP" in state.reason

    assert controller.release("LCP") is True
    state = controller.state()
    assert state.is_active is False
    assert state.level is DegradationLevel.NONE
    assert state.activated_at is None
    assert state.reason is None


def test_shared_action_stays_active_until_last_contributor_releases(controller):
    controller.engage("LCP", ["disable-animations", "reduce-image-quality"])
    controller.engage("INP", ["disable-animations", "reduce-polling"])
    assert controller.state().level is DegradationLevel.AGGRESSIVE

    controller.release("LCP")
    assert controller.is_active("disable-animations") is True
    assert controller.is_active("reduce-image-quality") is False
    assert controller.active_strategies() == ["disable-animations", "reduce-polling"]
    assert controller.state().level is DegradationLevel.MODERATE

    controller.release("INP")
    assert controller.state().is_active is False


def test_activated_at_kept_while_active(controller, clock):
    controller.engage("LCP", ["a"])
    started = clock.now
    clock.advance(30)
    controller.engage("INP", ["b"])
    assert controller.state().activated_at == started


def test_engage_without_new_actions_is_not_a_change(controller):
    changes = []
    controller.set_listener(changes.append)
    controller.engage("LCP", ["a"])
    assert controller.engage("INP", ["a"]) is False
    assert controller.engage("LCP", []) is False
    assert len(changes) == 1
    assert controller.contributors("a") == {"LCP", "INP"}


def test_manual_override_survives_budget_release(controller):
    controller.activate("disable-prefetch")
    controller.engage("LCP", ["disable-prefetch"])
    controller.release("LCP")
    assert controller.is_active("disable-prefetch") is True
    assert controller.contributors("disable-prefetch") == {MANUAL_SOURCE}


def test_deactivate_forces_action_off(controller):
    controller.engage("LCP", ["a", "b"])
    assert controller.deactivate("a") is True
    assert controller.active_strategies() == ["b"]
    assert controller.deactivate("missing") is False
    assert controller.deactivate() is True
    assert controller.state().is_active is False
    assert controller.reset() is False


def test_handlers_run_once_per_activation_and_failures_are_swallowed(clock):
    calls = []

    def broken():
        raise RuntimeError("handler failed")

    controller = DegradationController(
        clock=clock,
        handlers={"a": lambda: calls.append("a"), "b": broken},
    )
    assert controller.engage("LCP", ["a", "b"]) is True
    controller.engage("INP", ["a"])
    assert calls == ["a"]
    assert controller.active_strategies() == ["a", "b"]


def test_listener_failure_does_not_block_transition(clock):
    def listener(state):
        raise RuntimeError("listener failed")

    controller = DegradationController(clock=clock, on_change=listener)
    assert controller.engage("LCP", ["a"]) is True
    assert controller.state().is_active is True


def test_concurrent_release_during_handler_never_leaves_stale_notification(clock):
    notified = []
    controller = DegradationController(clock=clock, on_change=lambda state: notified.append(state.is_active))

    def release_elsewhere():
        worker = threading.Thread(target=controller.release, args=("LCP",))
        worker.start()
        worker.join(timeout=5)

    controller.set_handler("reduce-images", release_elsewhere)
    assert controller.engage("LCP", ["reduce-images"]) is True

    assert controller.state().is_active is False
    assert notified == [False]


def test_last_notification_matches_final_state_under_contention(clock):
    notified = []
    controller = DegradationController(clock=clock, on_change=notified.append)

    def churn(name):
        for _ in range(50):
            controller.engage(name, [f"{name}-strategy", "shared"])
            controller.release(name)

    workers = [threading.Thread(target=churn, args=(name,)) for name in ("LCP", "INP", "CLS")]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join(timeout=10)
    assert controller.state().is_active is False
    assert notified[-1] == controller.state()

    controller.engage("LCP", ["shared"])

    assert notified[-1] == controller.state()
    assert notified[-1].active_strategies == ("shared",)
