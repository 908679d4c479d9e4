"""Monitoring loop: waits for the match-found screen and clicks accept."""

from __future__ import annotations

import threading
import time
from typing import Any, Optional

from .controller import Controller
from .detector import ImageDetector, Point, TemplateError
from .hub import Broadcaster


def _format_elapsed(seconds: float) -> str:
    for unit, factor in (("s", 1.0), ("ms", 1e3), ("µs", 1e6)):
        value = seconds * factor
        if value >= 1 or unit == "µs":
            return f"{value:.3f}".rstrip("0").rstrip(".") + unit
    return f"{seconds}s"


class App:
    """Holds the monitoring state and runs the background watchers."""

    poll_interval = 0.5
    watch_interval = 1.0
    click_settle = 5.0
    min_verify_score = 0.2

    def __init__(
        self,
        detector: Optional[Any] = None,
        broadcaster: Optional[Broadcaster] = None,
        controller: Optional[Any] = None,
    ) -> None:
        self.detector = detector if detector is not None else ImageDetector()
        self.broadcaster = broadcaster if broadcaster is not None else Broadcaster()
        self.controller = controller if controller is not None else Controller()
        self._lock = threading.Lock()
        self._running = False
        self._waiting_for_match = False
        self._auto_watching = False
        self._monitor_stop = threading.Event()
        self._watch_stop = threading.Event()

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    @property
    def waiting_for_match(self) -> bool:
        with self._lock:
            return self._waiting_for_match

    @waiting_for_match.setter
    def waiting_for_match(self, value: bool) -> None:
        with self._lock:
            self._waiting_for_match = value

    @property
    def auto_watching(self) -> bool:
        with self._lock:
            return self._auto_watching

    def _log(self, message: str) -> None:
        self.broadcaster.send_log(message)

    def start_monitoring(self) -> Optional[threading.Thread]:
        """Start the monitoring thread; return it, or None if nothing was started."""
        if self.running:
            return None
        try:
            self.detector.load_templates()
        except TemplateError as exc:
            self._log(f"テンプレート読み込みエラー: {exc}")
            return None

        with self._lock:
            if self._running:
                return None
            self._running = True
            self._waiting_for_match = True
            stop = threading.Event()
            self._monitor_stop = stop

        self.broadcaster.update_status("マッチング画面待機中...")
        self._log("自動監視を開始しました - マッチング画面を検出中")
        thread = threading.Thread(target=self._monitor_loop, args=(stop,), daemon=True)
        thread.start()
        return thread

    def _monitor_loop(self, stop: threading.Event) -> None:
        while not stop.wait(self.poll_interval):
            started = time.perf_counter()
            try:
                img = self.detector.capture_screen()
            except OSError:
                continue
            if not self._monitor_step(img, started):
                return

    def _monitor_step(self, img: Any, started: float) -> bool:
        """Handle one screenshot; return False once monitoring has ended."""
        width, height = img.size
        if self.waiting_for_match:
            if self.detector.fast_detect_matching_screen(img):
                self._log("マッチング画面を検出 - 承認ボタン監視を開始")
                self.waiting_for_match = False
                self.broadcaster.update_status("承認ボタン監視中...")
            elif int(time.time()) % 5 == 0:
                self._log(f"マッチング画面を待機中... (画面サイズ: {width}x{height})")
            return True

        if not self.detector.fast_detect_matching_screen(img):
            self._log("マッチング画面が検出されなくなりました - 監視を自動停止します")
            self.stop_monitoring()
            return False

        pos = self.detector.fast_detect_accept_button(img)
        if pos is None:
            if int(time.time()) % 10 == 0:
                elapsed = _format_elapsed(time.perf_counter() - started)
                self._log(f"承認ボタンを検索中... (検索時間: {elapsed})")
                self._log(f"検索エリア: 画面サイズ {width}x{height}, 中央下部を重点検索")
            return True

        return self._handle_button(img, pos, started)

    def _handle_button(self, img: Any, pos: Point, started: float) -> bool:
        elapsed = _format_elapsed(time.perf_counter() - started)
        score = self.detector.verify_accept_button(img, pos, 1.0)
        self._log(
            f"承認ボタンを検出しました (位置: {pos.x}, {pos.y}, "
            f"検証スコア: {score:.3f}, 検出時間: {elapsed})"
        )
        if score <= self.min_verify_score:
            self._log(f"検証スコアが低いため、クリックをスキップしました (スコア: {score:.3f})")
            return True
        if not self.controller.click_accept_button(pos.x, pos.y):
            self._log("承認ボタンのクリックに失敗しました")
            return True

        self._log("承認ボタンをクリックしました")
        self._log("5秒待機後、マッチング画面の状態をチェックします")
        time.sleep(self.click_settle)
        try:
            after = self.detector.capture_screen()
        except OSError:
            after = None
        if after is not None and not self.detector.fast_detect_matching_screen(after):
            self._log("マッチング画面が検出されなくなりました - 監視を自動停止します")
            self.stop_monitoring()
            return False
        self._log("マッチング画面が継続中 - 監視を継続します")
        return True

    def stop_monitoring(self) -> None:
        """Stop the monitoring thread if it is running."""
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._waiting_for_match = False
            self._monitor_stop.set()
        self.broadcaster.update_status("停止中")
        self._log("監視を停止しました")

    def start_auto_watcher(self) -> Optional[threading.Thread]:
        """Watch for the match-found screen and start monitoring when it shows."""
        try:
            self.detector.load_templates()
        except TemplateError:
            return None
        with self._lock:
            self._watch_stop.set()
            stop = threading.Event()
            self._watch_stop = stop
            self._auto_watching = True
        thread = threading.Thread(target=self._watch_loop, args=(stop,), daemon=True)
        thread.start()
        return thread

    def stop_auto_watcher(self) -> None:
        with self._lock:
            self._auto_watching = False
            self._watch_stop.set()

    def _watch_loop(self, stop: threading.Event) -> None:
        while not stop.wait(self.watch_interval):
            if self.running:
                continue
            try:
                img = self.detector.capture_screen()
            except OSError:
                continue
            if self.detector.fast_detect_matching_screen(img):
                self._log("マッチング画面を検出 - 自動監視を開始します")
                self.start_monitoring()

    def test_environment(self) -> None:
        """Report screen, templates, detection timings and click support as log lines."""
        start = time.perf_counter()
        try:
            img = self.detector.capture_screen()
        except OSError:
            img = None
        if img is not None:
            width, height = img.size
            self._log(f"画面サイズ: {width}x{height}")
        self._log(f"OS: {self.controller.os_name}")

        try:
            self.detector.load_templates()
        except TemplateError as exc:
            self._log(f"テンプレート読み込みエラー: {exc}")
        else:
            self._log("テンプレート読み込み成功")
            accept = self.detector.accept_template
            if accept is not None:
                w, h = accept.size
                self._log(f"承認ボタンテンプレートサイズ: {w}x{h}")
            matching = self.detector.matching_template
            if matching is not None:
                w, h = matching.size
                self._log(f"マッチングテンプレートサイズ: {w}x{h}")

        if img is not None:
            t0 = time.perf_counter()
            detected = self.detector.fast_detect_matching_screen(img)
            elapsed = _format_elapsed(time.perf_counter() - t0)
            self._log(f"マッチング画面検出テスト: {elapsed} (結果: {str(detected).lower()})")

            t0 = time.perf_counter()
            pos = self.detector.fast_detect_accept_button(img)
            elapsed = _format_elapsed(time.perf_counter() - t0)
            if pos is not None:
                score = self.detector.verify_accept_button(img, pos, 1.0)
                self._log(
                    f"承認ボタン検出テスト: {elapsed} (結果: true, 検証スコア: {score:.3f}, "
                    f"位置: {pos.x},{pos.y})"
                )
            else:
                self._log(f"承認ボタン検出テスト: {elapsed} (結果: false)")

        if self.controller.is_system_supported():
            self._log("システム制御が利用可能です")
        else:
            self._log("システム制御が利用できません")

        self._log(f"環境テスト完了: {_format_elapsed(time.perf_counter() - start)}")