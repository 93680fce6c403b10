"""Pygame UI shell for the PSAT trainer.

The shell is the host for the deterministic core in psat_trainer/psat_core.py:
it forwards key presses as actions, pumps the SessionDriver every frame so
delayed actions fire on time, and plays a synthesized cue for each stimulus.
"""

from __future__ import annotations

import logging
import math
from array import array
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import pygame

from .clock import RealClock
from .config import build_model, load_config
from .driver import SessionDriver
from .keys import parse_answer
from .pacing import Outcome
from .psat_core import ManualStop, Start, UpdateDuration, UpdateIsi, UserAnswers
from .results import summarize, summary_lines

logger = logging.getLogger(__name__)


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


class _PsatAudioAdapter:
    """Pygame audio for stimulus cues.

    Implements the driver's SoundPlayer protocol. If the mixer cannot start
    (no device, dummy driver quirks) cues are silently skipped.
    """

    _sample_rate = 22050
    _amp = 32767
    _digit_hz: dict[str, float] = {
        "0": 330.0,
        "1": 350.0,
        "2": 390.0,
        "3": 430.0,
        "4": 470.0,
        "5": 510.0,
        "6": 560.0,
        "7": 610.0,
        "8": 670.0,
        "9": 730.0,
    }

    def __init__(self) -> None:
        self._available = False
        self._cache: dict[str, pygame.mixer.Sound] = {}
        self._channel: pygame.mixer.Channel | None = None
        try:
            if pygame.mixer.get_init() is None:
                pygame.mixer.init(frequency=self._sample_rate, size=-16, channels=1, buffer=512)
            self._channel = pygame.mixer.Channel(0)
            self._available = True
        except Exception:
            logger.warning("audio unavailable; stimulus cues disabled", exc_info=True)
            self._available = False

    @property
    def available(self) -> bool:
        return self._available

    def play(self, pq: object) -> None:
        if not self._available:
            return
        assert self._channel is not None
        text = str(pq)
        sound = self._cache.get(text)
        if sound is None:
            sound = pygame.mixer.Sound(buffer=self._render_cue_pcm(text).tobytes())
            self._cache[text] = sound
        self._channel.play(sound)

    def stop(self) -> None:
        if self._available and self._channel is not None:
            self._channel.stop()

    def _render_cue_pcm(self, text: str) -> array[int]:
        out = array("h")
        digits = [ch for ch in text if ch.isdigit()] or ["0"]
        for digit in digits:
            out.extend(self._render_tone_pcm(self._digit_hz.get(digit, 420.0), 0.18, gain=0.34))
            out.extend(array("h", [0] * int(self._sample_rate * 0.03)))
        return out

    def _render_tone_pcm(self, frequency_hz: float, duration_s: float, *, gain: float) -> array[int]:
        sample_count = max(1, int(self._sample_rate * duration_s))
        fade_n = max(1, int(self._sample_rate * 0.008))
        out = array("h")
        for idx in range(sample_count):
            envelope = 1.0
            if idx < fade_n:
                envelope = idx / float(fade_n)
            tail = sample_count - idx - 1
            if tail < fade_n:
                envelope = min(envelope, tail / float(fade_n))
            phase = (2.0 * math.pi * float(frequency_hz) * idx) / float(self._sample_rate)
            sample = math.sin(phase) * gain * max(0.0, envelope)
            out.append(int(max(-1.0, min(1.0, sample)) * self._amp))
        return out


WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

_BG = (3, 9, 78)
_PANEL = (8, 18, 104)
_BORDER = (226, 236, 255)
_TEXT = (238, 245, 255)
_MUTED = (186, 200, 224)
_RIGHT = (120, 220, 140)
_WRONG = (235, 110, 110)


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # Never pop the root screen; it handles its own quit.
        if len(self._screens) > 1:
            self._screens.pop()

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


def _draw_frame(surface: pygame.Surface, title: str, font: pygame.font.Font) -> pygame.Rect:
    w, h = surface.get_size()
    surface.fill(_BG)
    margin = max(10, min(26, w // 34))
    frame = pygame.Rect(margin, margin, max(260, w - margin * 2), max(220, h - margin * 2))
    pygame.draw.rect(surface, _PANEL, frame)
    pygame.draw.rect(surface, _BORDER, frame, 2)
    text = font.render(title, True, _TEXT)
    surface.blit(text, text.get_rect(midtop=(frame.centerx, frame.y + 14)))
    return frame


def _blit_lines(
    surface: pygame.Surface,
    font: pygame.font.Font,
    lines: list[str],
    *,
    x: int,
    y: int,
    color: tuple[int, int, int] = _TEXT,
) -> None:
    for line in lines:
        surface.blit(font.render(line, True, color), (x, y))
        y += font.get_linesize()


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem], *, is_root: bool = False) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._is_root = is_root
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 32)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif event.key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            if self._items:
                self._items[self._selected].action()
        elif event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            if self._is_root:
                self._app.quit()
            else:
                self._app.pop()

    def _move(self, delta: int) -> None:
        if not self._items:
            return
        self._selected = (self._selected + delta) % len(self._items)

    def render(self, surface: pygame.Surface) -> None:
        frame = _draw_frame(surface, self._title, self._title_font)
        y = frame.y + 90
        for idx, item in enumerate(self._items):
            row = pygame.Rect(frame.x + 40, y, frame.w - 80, 40)
            selected = idx == self._selected
            pygame.draw.rect(surface, (244, 248, 255) if selected else (9, 20, 106), row)
            pygame.draw.rect(surface, (62, 84, 152), row, 1)
            color = (14, 26, 74) if selected else _TEXT
            text = self._item_font.render(item.label, True, color)
            surface.blit(text, (row.x + 10, row.y + (row.h - text.get_height()) // 2))
            y += 50
        foot = self._hint_font.render("Enter: Select  |  Esc: Back", True, _MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(frame.centerx, frame.bottom - 10)))


class PsatScreen:
    """Live session: shows the latest stimulus and collects typed sums."""

    def __init__(self, app: App, *, driver: SessionDriver, audio: _PsatAudioAdapter) -> None:
        self._app = app
        self._driver = driver
        self._audio = audio
        self._input = ""
        self._big_font = pygame.font.Font(None, 140)
        self._font = pygame.font.Font(None, 32)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        running = self._driver.model.is_running

        if event.key == pygame.K_ESCAPE:
            if running:
                self._driver.dispatch(ManualStop())
                self._audio.stop()
            else:
                self._app.pop()
            self._input = ""
            return

        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            if not running:
                self._input = ""
                self._driver.dispatch(Start())
                return
            answer = parse_answer(self._input)
            self._input = ""
            if answer is not None:
                self._driver.dispatch(UserAnswers(answer))
            return

        if event.key == pygame.K_BACKSPACE:
            self._input = self._input[:-1]
            return

        ch = getattr(event, "unicode", "")
        if running and ch.isascii() and ch.isdigit() and len(self._input) < 2:
            self._input += ch

    def render(self, surface: pygame.Surface) -> None:
        model = self._driver.model

        frame = _draw_frame(surface, "Paced Serial Addition", self._font)

        if not model.is_running:
            if model.session_id == 0:
                lines = [
                    "Digits are presented one at a time.",
                    "Add each digit to the one before it and type the sum.",
                    "",
                    f"ISI: {model.isi} ms    Duration: {model.duration} min",
                ]
            else:
                lines = summary_lines(summarize(model))
            _blit_lines(surface, self._font, lines, x=frame.x + 40, y=frame.y + 70)
            hint = "Enter: Start  |  Esc: Back"
        else:
            stim = "" if not model.added_pqs else str(model.added_pqs[0])
            text = self._big_font.render(stim, True, _TEXT)
            surface.blit(text, text.get_rect(center=(frame.centerx, frame.centery - 40)))

            box = pygame.Rect(0, 0, 160, 48)
            box.center = (frame.centerx, frame.centery + 70)
            pygame.draw.rect(surface, (6, 13, 92), box)
            pygame.draw.rect(surface, _BORDER, box, 1)
            entry = self._font.render(self._input, True, _TEXT)
            surface.blit(entry, entry.get_rect(center=box.center))

            if model.outcomes:
                last = model.outcomes[0]
                color = _RIGHT if last is Outcome.RIGHT else _WRONG
                mark = self._font.render(last.value.upper(), True, color)
                surface.blit(mark, mark.get_rect(midtop=(frame.centerx, box.bottom + 12)))

            status = f"Session {model.session_id}   ISI {model.isi} ms   Trials {len(model.outcomes)}"
            surface.blit(self._hint_font.render(status, True, _MUTED), (frame.x + 16, frame.y + 16))
            hint = "Type sum + Enter  |  Esc: Stop"

        foot = self._hint_font.render(hint, True, _MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(frame.centerx, frame.bottom - 10)))


class SettingsScreen:
    """Free-form ISI/duration entry; the core decides what it accepts."""

    _FIELDS = ("ISI (ms)", "Duration (min)")

    def __init__(self, app: App, *, driver: SessionDriver) -> None:
        self._app = app
        self._driver = driver
        self._selected = 0
        self._buffer = ""
        self._message = ""
        self._font = pygame.font.Font(None, 32)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key == pygame.K_ESCAPE:
            self._buffer = ""
            self._message = ""
            self._app.pop()
        elif event.key in (pygame.K_UP, pygame.K_DOWN):
            self._selected = (self._selected + 1) % len(self._FIELDS)
            self._buffer = ""
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            self._submit()
        elif event.key == pygame.K_BACKSPACE:
            self._buffer = self._buffer[:-1]
        else:
            ch = getattr(event, "unicode", "")
            if ch and ch.isprintable() and len(self._buffer) < 12:
                self._buffer += ch

    def _submit(self) -> None:
        before = self._driver.model
        if self._selected == 0:
            self._driver.dispatch(UpdateIsi(self._buffer))
        else:
            self._driver.dispatch(UpdateDuration(self._buffer))
        after = self._driver.model
        changed = (before.isi, before.duration) != (after.isi, after.duration)
        self._message = "Saved." if changed else "Not applied."
        self._buffer = ""

    def render(self, surface: pygame.Surface) -> None:
        model = self._driver.model
        frame = _draw_frame(surface, "Settings", self._font)
        values = (str(model.isi), str(model.duration))
        y = frame.y + 80
        for idx, label in enumerate(self._FIELDS):
            marker = ">" if idx == self._selected else " "
            editing = f"  [{self._buffer}]" if idx == self._selected else ""
            line = f"{marker} {label}: {values[idx]}{editing}"
            surface.blit(self._font.render(line, True, _TEXT), (frame.x + 40, y))
            y += 44
        message = "Locked while a session is running." if model.is_running else self._message
        if message:
            surface.blit(self._font.render(message, True, _MUTED), (frame.x + 40, y + 20))
        foot = self._hint_font.render("Up/Down: Field  |  Enter: Apply  |  Esc: Back", True, _MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(frame.centerx, frame.bottom - 10)))


def run(*, max_frames: int | None = None, event_injector: Callable[[int], None] | None = None) -> int:
    pygame.init()

    pygame.display.set_caption("PSAT Trainer")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    app = App(surface=surface, font=font)

    config = load_config()
    audio = _PsatAudioAdapter()
    driver = SessionDriver(model=build_model(config), clock=RealClock(), sound=audio)
    logger.info(
        "PSAT trainer ready (isi=%dms, duration=%dmin, key=%s)",
        config.isi_ms,
        config.duration_min,
        config.key_name,
    )

    psat = PsatScreen(app, driver=driver, audio=audio)
    settings = SettingsScreen(app, driver=driver)

    main_items = [
        MenuItem("PSAT", lambda: app.push(psat)),
        MenuItem("Settings", lambda: app.push(settings)),
        MenuItem("Quit", app.quit),
    ]
    app.push(MenuScreen(app, "Main Menu", main_items, is_root=True))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            # Timers run regardless of which screen is on top.
            driver.pump()
            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        pygame.quit()

    return 0
