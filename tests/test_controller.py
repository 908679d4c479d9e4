import subprocess
from unittest.mock import patch

from autoaccept.controller import Controller


def test_explicit_os_name_is_kept():
    assert Controller("darwin").os_name == "darwin"


def test_default_os_detects_windows():
    with patch("sys.platform", "win32"):
        assert Controller().os_name == "windows"


def test_default_os_detects_linux():
    with patch("sys.platform", "linux"):
        assert Controller().os_name == "linux"


@patch("autoaccept.controller.time.sleep")
@patch("autoaccept.controller.subprocess.run")
def test_unix_click_moves_then_clicks(run, sleep):
    assert Controller("linux").click_accept_button(12, 34) is True
    commands = [call.args[0] for call in run.call_args_list]
    assert commands == [
        ["xdotool", "mousemove", "12", "34"],
        ["xdotool", "click", "1"],
    ]
    sleep.assert_called_once()


@patch("autoaccept.controller.time.sleep")
@patch("autoaccept.controller.subprocess.run")
def test_unix_click_stops_after_failed_move(run, sleep):
    run.side_effect = subprocess.CalledProcessError(1, "xdotool")
    assert Controller("linux").click_accept_button(1, 2) is False
    assert run.call_count == 1


@patch("autoaccept.controller.time.sleep")
@patch("autoaccept.controller.subprocess.run")
def test_unix_click_without_tool_fails(run, sleep):
    run.side_effect = FileNotFoundError("xdotool")
    assert Controller("linux").click_accept_button(1, 2) is False


@patch("autoaccept.controller.subprocess.run")
def test_windows_click_runs_powershell_with_position(run):
    assert Controller("windows").click_accept_button(12, 34) is True
    args = run.call_args.args[0]
    assert args[:2] == ["powershell", "-Command"]
    assert "::new(12, 34)" in args[2]


@patch("autoaccept.controller.subprocess.run")
def test_windows_click_failure_reported(run):
    run.side_effect = subprocess.CalledProcessError(1, "powershell")
    assert Controller("windows").click_accept_button(5, 6) is False


@patch("autoaccept.controller.shutil.which")
def test_windows_always_supported(which):
    assert Controller("windows").is_system_supported() is True
    which.assert_not_called()


@patch("autoaccept.controller.shutil.which", return_value="/usr/bin/xdotool")
def test_unix_supported_with_xdotool(which):
    assert Controller("linux").is_system_supported() is True
    which.assert_called_once_with("xdotool")


@patch("autoaccept.controller.shutil.which", return_value=None)
def test_unix_unsupported_without_xdotool(which):
    assert Controller("linux").is_system_supported() is False