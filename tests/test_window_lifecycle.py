"""Tests for the window/tray state machine and its controller."""

import pytest

from taker_desktop.window import (
    ClosePolicy, Effect, Op, TrayState, WindowLifecycle, WindowLifecycleController, WindowState,
    close_policy_for,
)

URL = "http://127.0.0.1:7113"


def ops(effects):
    return [e.op for e in effects]


@pytest.mark.parametrize("platform, policy", [
    ("win32", ClosePolicy.HIDE_FROM_TASKBAR),
    ("darwin", ClosePolicy.HIDE_DOCK),
    ("linux", ClosePolicy.QUIT),
    ("freebsd13", ClosePolicy.QUIT),
])
def test_close_policy_for_platform(platform, policy):
    assert close_policy_for(platform) is policy


def test_first_show_creates_tray_and_hidden_window():
    lc = WindowLifecycle(ClosePolicy.QUIT)

    assert ops(lc.show_requested()) == [Op.CREATE_TRAY, Op.CREATE_WINDOW]
    assert lc.state is WindowState.CREATED_HIDDEN
    assert lc.tray is TrayState.PRESENT


def test_first_show_on_dock_platform_shows_dock_icon():
    lc = WindowLifecycle(ClosePolicy.HIDE_DOCK)

    assert ops(lc.show_requested()) == [Op.SHOW_DOCK, Op.CREATE_TRAY, Op.CREATE_WINDOW]


def test_ready_shows_window():
    lc = WindowLifecycle(ClosePolicy.QUIT)
    lc.show_requested()

    assert ops(lc.window_ready()) == [Op.SHOW_WINDOW]
    assert lc.state is WindowState.CREATED_VISIBLE
    assert lc.window_ready() == []


def test_ready_minimizes_when_start_minimized():
    lc = WindowLifecycle(ClosePolicy.QUIT, start_minimized=True)
    lc.show_requested()

    assert ops(lc.window_ready()) == [Op.MINIMIZE_WINDOW]


def test_ready_before_create_is_ignored():
    lc = WindowLifecycle(ClosePolicy.QUIT)

    assert lc.window_ready() == []
    assert lc.state is WindowState.ABSENT


@pytest.mark.parametrize("policy, expected", [
    (ClosePolicy.HIDE_FROM_TASKBAR, [Op.HIDE_FROM_TASKBAR]),
    (ClosePolicy.HIDE_DOCK, [Op.HIDE_DOCK]),
    (ClosePolicy.QUIT, [Op.QUIT]),
])
def test_close_follows_platform_policy(policy, expected):
    lc = WindowLifecycle(policy)
    lc.show_requested()
    lc.window_ready()

    assert ops(lc.window_closed()) == expected
    assert lc.state is WindowState.CLOSED


def test_close_while_hidden_also_closes():
    lc = WindowLifecycle(ClosePolicy.HIDE_FROM_TASKBAR)
    lc.show_requested()

    assert ops(lc.window_closed()) == [Op.HIDE_FROM_TASKBAR]


def test_close_without_window_is_ignored():
    lc = WindowLifecycle(ClosePolicy.QUIT)

    assert lc.window_closed() == []


def test_reactivation_recreates_window_but_not_tray():
    lc = WindowLifecycle(ClosePolicy.HIDE_FROM_TASKBAR)
    lc.show_requested()
    lc.window_ready()
    lc.window_closed()

    assert ops(lc.show_requested()) == [Op.SHOW_IN_TASKBAR, Op.CREATE_WINDOW]
    assert lc.state is WindowState.CREATED_HIDDEN
    assert ops(lc.window_ready()) == [Op.SHOW_WINDOW]


def test_show_on_visible_window_brings_it_forward():
    lc = WindowLifecycle(ClosePolicy.QUIT)
    lc.show_requested()
    lc.window_ready()

    assert ops(lc.show_requested()) == [Op.SHOW_WINDOW]


def test_alive_loads_url_once():
    lc = WindowLifecycle(ClosePolicy.QUIT)
    lc.show_requested()

    assert lc.alive(URL) == [Effect(Op.LOAD_URL, URL)]
    assert lc.alive(URL) == []
    assert lc.loaded_url == URL


def test_alive_without_window_loads_on_next_show():
    lc = WindowLifecycle(ClosePolicy.HIDE_DOCK)
    lc.show_requested()
    lc.window_closed()

    assert lc.alive(URL) == []
    assert lc.loaded_url is None

    effects = lc.show_requested()
    assert effects[-1] == Effect(Op.LOAD_URL, URL)
    assert lc.loaded_url == URL


def test_recreated_window_reloads_live_ui():
    lc = WindowLifecycle(ClosePolicy.HIDE_FROM_TASKBAR)
    lc.show_requested()
    lc.alive(URL)
    lc.window_closed()

    assert lc.loaded_url is None
    assert Effect(Op.LOAD_URL, URL) in lc.show_requested()


def test_navigation_failure_is_not_retried():
    lc = WindowLifecycle(ClosePolicy.QUIT)
    lc.show_requested()
    lc.alive(URL)

    assert lc.navigation_failed() == []
    assert lc.loaded_url is None


def test_fatal_error_is_shown_and_kept_for_recreation():
    lc = WindowLifecycle(ClosePolicy.HIDE_DOCK)
    lc.show_requested()

    assert lc.fatal("no port") == [Effect(Op.SHOW_ERROR, "no port")]
    lc.window_closed()
    assert lc.show_requested()[-1] == Effect(Op.SHOW_ERROR, "no port")


@pytest.mark.parametrize("policy", list(ClosePolicy))
@pytest.mark.parametrize("steps", [0, 1, 2, 3])
def test_quit_always_quits(policy, steps):
    lc = WindowLifecycle(policy)
    transitions = [lc.show_requested, lc.window_ready, lc.window_closed]
    for step in transitions[:steps]:
        step()

    assert ops(lc.quit()) == [Op.QUIT]


# Controller


def _controller(host, tray_cls, policy=ClosePolicy.QUIT, **kwargs):
    quits = []
    controller = WindowLifecycleController(
        host, tray_cls, policy, on_quit=lambda: quits.append(True), **kwargs
    )
    return controller, quits


def test_controller_creates_tray_once(fake_host, fake_tray_cls):
    controller, _ = _controller(fake_host, fake_tray_cls, ClosePolicy.HIDE_FROM_TASKBAR)

    controller.show()
    controller.ready()
    controller.closed()
    controller.show()

    assert fake_tray_cls.instances == 1
    assert controller.tray.started is True
    assert fake_host.calls == ["create", "show", "taskbar:False", "taskbar:True", "create"]


def test_controller_quit_on_last_close(fake_host, fake_tray_cls):
    controller, quits = _controller(fake_host, fake_tray_cls, ClosePolicy.QUIT)
    controller.show()
    controller.ready()

    controller.closed()

    assert quits == [True]


@pytest.mark.parametrize("policy", [ClosePolicy.HIDE_FROM_TASKBAR, ClosePolicy.HIDE_DOCK])
def test_controller_keeps_process_on_tray_platforms(fake_host, fake_tray_cls, policy):
    controller, quits = _controller(fake_host, fake_tray_cls, policy)
    controller.show()
    controller.ready()

    controller.closed()

    assert quits == []
    assert controller.state is WindowState.CLOSED


def test_controller_minimizes_when_configured(fake_host, fake_tray_cls):
    controller, _ = _controller(fake_host, fake_tray_cls, start_minimized=True)

    controller.show()
    controller.ready()

    assert fake_host.calls == ["create", "minimize"]


def test_controller_logs_navigation_error(fake_host_cls, fake_tray_cls, caplog):
    host = fake_host_cls(fail_navigation=True)
    controller, _ = _controller(host, fake_tray_cls)
    controller.show()

    controller.alive(URL)

    assert host.calls.count("load_url") == 1
    assert controller.lifecycle.loaded_url is None
    assert "Failed to load" in caplog.text


def test_controller_stop_tray(fake_host, fake_tray_cls):
    controller, _ = _controller(fake_host, fake_tray_cls)
    controller.stop_tray()
    controller.show()
    controller.stop_tray()

    assert controller.tray.stopped is True
