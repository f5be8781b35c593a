from __future__ import annotations

import sys
import threading
import types

import pytest

from nlinterface.errors import NarrationUnavailable


class FakeDriverEngine:
    """Stands in for a pyttsx3 engine; stays busy until stopped or out of iterations."""

    def __init__(self, busy_iterations: int = 1000) -> None:
        self.busy_iterations = busy_iterations
        self.spoken: list[str] = []
        self.properties: dict[str, object] = {}
        self.calls: list[tuple[str, int]] = []
        self.started = threading.Event()
        self._busy = False
        self._in_loop = False

    def _record(self, name: str) -> None:
        self.calls.append((name, threading.get_ident()))

    def setProperty(self, name: str, value: object) -> None:
        self.properties[name] = value

    def startLoop(self, use_driver_loop: bool = True) -> None:
        assert use_driver_loop is False
        self._in_loop = True
        self._record("startLoop")

    def say(self, text: str) -> None:
        self.spoken.append(text)
        self._busy = True

    def iterate(self) -> None:
        assert self._in_loop
        self._record("iterate")
        self.started.set()
        self.busy_iterations -= 1
        if self.busy_iterations <= 0:
            self._busy = False

    def isBusy(self) -> bool:
        return self._busy

    def stop(self) -> None:
        self._record("stop")
        self._busy = False

    def endLoop(self) -> None:
        self._in_loop = False
        self._record("endLoop")


def _install(monkeypatch, engine=None, error: Exception | None = None) -> None:
    fake = types.ModuleType("pyttsx3")

    def init():
        if error is not None:
            raise error
        return engine

    fake.init = init
    monkeypatch.setitem(sys.modules, "pyttsx3", fake)


def test_speak_runs_the_external_loop_until_idle(monkeypatch) -> None:
    from nlinterface.voice.tts_pyttsx3 import Pyttsx3NarrationEngine

    driver = FakeDriverEngine(busy_iterations=3)
    _install(monkeypatch, driver)
    narrator = Pyttsx3NarrationEngine(rate=180, volume=1.5)
    narrator.poll_interval = 0.001

    narrator.speak("  Invalid command ")

    assert driver.spoken == ["Invalid command"]
    assert driver.properties == {"rate": 180, "volume": 1.0}
    names = [name for name, _ in driver.calls]
    assert names[0] == "startLoop"
    assert names[-1] == "endLoop"
    assert "stop" not in names


def test_stop_from_another_thread_halts_the_engine_on_the_speaking_thread(monkeypatch) -> None:
    from nlinterface.voice.tts_pyttsx3 import Pyttsx3NarrationEngine

    driver = FakeDriverEngine()
    _install(monkeypatch, driver)
    narrator = Pyttsx3NarrationEngine()
    narrator.poll_interval = 0.005

    speaking = threading.Thread(target=narrator.speak, args=("Your options are many",))
    speaking.start()
    assert driver.started.wait(timeout=2)
    narrator.stop()
    speaking.join(timeout=2)

    assert not speaking.is_alive()
    threads = {name: ident for name, ident in driver.calls}
    assert threads["stop"] == speaking.ident
    assert threads["endLoop"] == speaking.ident


def test_blank_text_is_not_spoken(monkeypatch) -> None:
    from nlinterface.voice.tts_pyttsx3 import Pyttsx3NarrationEngine

    driver = FakeDriverEngine()
    _install(monkeypatch, driver)

    Pyttsx3NarrationEngine().speak("   ")

    assert driver.spoken == []
    assert driver.calls == []


def test_driver_failure_is_reported_as_narration_unavailable(monkeypatch) -> None:
    from nlinterface.voice.tts_pyttsx3 import Pyttsx3NarrationEngine

    _install(monkeypatch, error=OSError("libespeak.so.1: cannot open shared object file"))

    with pytest.raises(NarrationUnavailable):
        Pyttsx3NarrationEngine()
