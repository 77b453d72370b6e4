"""
Playback - the cursor state machine

Walks chapters -> scenes -> lines. One dispatch task runs at a time, guarded
by ``cursor.busy``; instantaneous directives chain inside that task, dialogue
lines stop and wait for the next progress signal (or an auto/skip
continuation timer).

Flow:
    start_session -> _load_scene -> _show_next -> _dispatch
        Dialogue:   background crossfade, portrait, first-line fade-in, typewriter
        instant:    clear / shake / audio play / audio stop, then the next line
        exhausted:  fade out, transition delay, next scene (or chapter, or menu)
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from ..script.errors import ScriptError
from ..script.model import (
    DEFAULT_POSITION,
    AudioPlay,
    AudioStop,
    Clear,
    Dialogue,
    LineDirective,
    Shake,
    is_instantaneous,
)
from ..script.repository import IScriptRepository
from .adapters.assets import IAssets
from .adapters.audio import IAudio, NullAudio
from .adapters.storage import IKeyValueStore, MemoryKeyValueStore
from .asset_cache import AssetCache, AssetLoadFailure
from .audio_utils import AudioCuePlayer
from .backgrounds import BackgroundTransitioner
from .config_io import PlaybackConfig, load_auto_speed, save_auto_speed
from .cursor import Phase, PlaybackCursor
from .effects import ShakePlayer
from .events import (
    ChapterStartEvent,
    ErrorEvent,
    EventSystem,
    FadeEffectEvent,
    LoadCompleteEvent,
    ModeChangeEvent,
    SaveCompleteEvent,
    SceneLoadEvent,
    SceneTransitionEvent,
    SessionEndEvent,
    SessionStartEvent,
    TextShowEvent,
)
from .renderer import IRenderSurface
from .save_manager import DEFAULT_PREVIEW, RenderSummary, SnapshotStore
from .scheduler import Scheduler, Task, TaskBody, Timer
from .transitions import FADE_OPAQUE, FADE_READING, fade
from .typewriter import Typewriter

logger = logging.getLogger(__name__)


class Playback:
    def __init__(
        self,
        scheduler: Scheduler,
        surface: IRenderSurface,
        repository: IScriptRepository,
        store: Optional[IKeyValueStore] = None,
        config: Optional[PlaybackConfig] = None,
        events: Optional[EventSystem] = None,
        assets: Optional[IAssets] = None,
        audio: Optional[IAudio] = None,
    ) -> None:
        self.scheduler = scheduler
        self.surface = surface
        self.repository = repository
        self.store = store if store is not None else MemoryKeyValueStore()
        self.config = config or PlaybackConfig()
        self.events = events or EventSystem()
        self.cursor = PlaybackCursor(auto_speed_ms=self._stored_auto_speed())

        # session caches, dropped on exit to menu
        loader: Callable[[str], Any] = assets.load_image if assets is not None else (lambda path: path)
        self.images = AssetCache(loader=loader, kind="image")

        cfg = self.config
        self.typewriter = Typewriter(base_delay_ms=cfg.typing_speed_ms, events=self.events)
        self.backgrounds = BackgroundTransitioner(
            surface, self.images, duration_ms=cfg.background_transition_ms,
            frame_ms=cfg.frame_ms, events=self.events,
        )
        self.shaker = ShakePlayer(surface, events=self.events)
        self.audio = AudioCuePlayer(audio or NullAudio(), events=self.events)
        self.snapshots = SnapshotStore(self.store, max_slots=cfg.max_save_slots)

        self._task: Optional[Task] = None
        # pending auto/skip self-continuation
        self._continuation: Optional[Timer] = None
        # pending end-of-scene transition delay
        self._scene_timer: Optional[Timer] = None

    # =========================================
    # Queries
    # =========================================

    @property
    def is_idle(self) -> bool:
        return self.cursor.phase is Phase.IDLE

    @property
    def current_directive(self) -> Optional[LineDirective]:
        c = self.cursor
        return c.script.line_at(c.line_index) if c.script is not None else None

    # =========================================
    # Session lifecycle
    # =========================================

    def start_session(self) -> bool:
        """Begin at the first scene of the first chapter. False when there is no content."""
        self._cancel_pending()
        c = self.cursor
        c.reset(self._stored_auto_speed())
        self.surface.set_fade_opacity(FADE_OPAQUE)
        try:
            index = self.repository.get_scene_index()
        except ScriptError as e:
            logger.error(f"Cannot start: {e}")
            self._emit(ErrorEvent(kind="content", message=str(e)))
            self.exit_to_menu(reason="no_content")
            return False
        if index.is_empty:
            logger.error("Cannot start: scene index is empty")
            self._emit(ErrorEvent(kind="content", message="scene index is empty"))
            self.exit_to_menu(reason="no_content")
            return False

        c.scene_index = index
        c.chapter = index.first_chapter
        c.scene_ordinal = 0
        logger.debug(f"Session start at chapter {c.chapter}")
        self._emit(SessionStartEvent(chapter=c.chapter or ""))
        self._emit(ChapterStartEvent(chapter=c.chapter or ""))
        self._load_scene()
        return True

    def exit_to_menu(self, reason: str = "exit") -> None:
        """Stop everything and return the cursor to its defaults."""
        self._cancel_pending()
        self.audio.cleanup()
        self.images.clear()
        self.surface.clear_text()
        self.surface.set_character(None)
        self.surface.set_shake(None)
        self.surface.reset_state()
        self.cursor.reset(self._stored_auto_speed())
        logger.debug(f"Exit to menu ({reason})")
        self._emit(SessionEndEvent(reason=reason))

    # =========================================
    # Progress signal & modes
    # =========================================

    def advance(self) -> None:
        """Handle one user progress signal (click / Enter)."""
        c = self.cursor
        if c.phase is Phase.IDLE or c.fading or c.transitioning:
            return
        if c.hidden:
            # un-hiding consumes the signal
            self.set_hidden(False)
            return
        if c.auto_mode:
            self.set_auto_mode(False)
        if c.skip_mode:
            self.set_skip_mode(False)
        if c.typing:
            c.skip_requested = True
            return
        if c.busy:
            logger.debug("Progress signal dropped while busy")
            return
        self._show_next()

    def set_auto_mode(self, enabled: bool) -> None:
        c = self.cursor
        enabled = bool(enabled)
        self._cancel_continuation()
        if enabled and c.skip_mode:
            c.skip_mode = False
            self._emit(ModeChangeEvent(mode="skip", enabled=False))
        if c.auto_mode != enabled:
            c.auto_mode = enabled
            self._emit(ModeChangeEvent(mode="auto", enabled=enabled))
        if enabled and self._waiting_on_reader():
            self._schedule_continuation(c.auto_speed_ms, "auto")

    def set_skip_mode(self, enabled: bool) -> None:
        c = self.cursor
        enabled = bool(enabled)
        self._cancel_continuation()
        if enabled and c.auto_mode:
            c.auto_mode = False
            self._emit(ModeChangeEvent(mode="auto", enabled=False))
        if c.skip_mode != enabled:
            c.skip_mode = enabled
            self._emit(ModeChangeEvent(mode="skip", enabled=enabled))
        if not enabled:
            return
        if c.typing:
            c.skip_requested = True
        elif self._waiting_on_reader():
            self._schedule_continuation(self.config.skip_delay_ms, "skip")

    def set_hidden(self, hidden: bool) -> None:
        """Hide or show the text window. Never moves the cursor."""
        c = self.cursor
        hidden = bool(hidden)
        if hidden:
            self._cancel_continuation()
            if c.auto_mode:
                c.auto_mode = False
                self._emit(ModeChangeEvent(mode="auto", enabled=False))
            if c.skip_mode:
                c.skip_mode = False
                self._emit(ModeChangeEvent(mode="skip", enabled=False))
        changed = c.hidden != hidden
        c.hidden = hidden
        self.surface.set_text_visible(not hidden)
        self.surface.set_controls_visible(not hidden)
        if changed:
            self._emit(ModeChangeEvent(mode="hidden", enabled=hidden))

    def set_auto_advance_delay(self, ms: int) -> int:
        """Store and persist the auto mode delay; returns the value kept."""
        value = max(0, int(ms))
        self.cursor.auto_speed_ms = value
        save_auto_speed(self.store, value)
        return value

    # =========================================
    # Snapshots
    # =========================================

    def save_to_slot(self, slot: int) -> bool:
        c = self.cursor
        if c.phase is Phase.IDLE or c.script is None:
            logger.warning(f"Nothing to save to slot {slot}: no session running")
            self._emit(SaveCompleteEvent(slot=slot, success=False))
            return False
        shown = c.script.line_at(c.line_index - 1)
        preview = shown.text if isinstance(shown, Dialogue) and shown.text else DEFAULT_PREVIEW
        snap = self.surface.get_snapshot()
        position = c.to_save_data()
        typed = c.script.line_at(c.line_index)
        if c.typing and isinstance(typed, Dialogue):
            # the line being revealed is typed again on load
            snap["lines"] = list(snap.get("lines") or [])[:-1]
            position["charCount"] = max(0, c.char_count - len(typed.text or ""))
        summary = RenderSummary.from_snapshot(snap, preview_text=preview)
        ok = self.snapshots.save(slot, position, summary)
        if not ok:
            self._emit(ErrorEvent(kind="storage", message=f"save to slot {slot} failed"))
        self._emit(SaveCompleteEvent(slot=slot, success=ok))
        return ok

    def load_from_slot(self, slot: int) -> bool:
        """Resume from a slot without replaying earlier lines.

        The scene index is reloaded and the scene re-fetched; on any failure the
        running session is left as it was.
        """
        ok = self._restore(slot)
        self._emit(LoadCompleteEvent(slot=slot, success=ok))
        return ok

    def _restore(self, slot: int) -> bool:
        record = self.snapshots.load(slot)
        if record is None:
            logger.info(f"Slot {slot} is empty")
            return False
        probe = PlaybackCursor()
        try:
            probe.apply_save_data(record.cursor, self.config.default_auto_speed_ms)
            index = self.repository.get_scene_index()
        except (TypeError, ValueError) as e:
            logger.warning(f"Slot {slot} has a bad position: {e}")
            return False
        except ScriptError as e:
            logger.error(f"Cannot load slot {slot}: {e}")
            self._emit(ErrorEvent(kind="content", message=str(e)))
            return False
        file_id = index.scene_file(probe.chapter, probe.scene_ordinal)
        if file_id is None:
            logger.warning(f"Slot {slot} points at a scene that no longer exists: {probe.chapter}/{probe.scene_ordinal}")
            return False
        try:
            script = self.repository.get_scene_script(file_id)
        except ScriptError as e:
            logger.error(f"Cannot load slot {slot}: {e}")
            self._emit(ErrorEvent(kind="content", message=str(e)))
            return False
        probe.script = script
        if not probe.position_valid():
            logger.warning(f"Slot {slot} has an out of range position: "
                           f"scene {probe.scene_ordinal} line {probe.line_index} chars {probe.char_count}")
            return False

        self._cancel_pending()
        self.audio.stop()
        c = self.cursor
        c.apply_save_data(record.cursor, self.config.default_auto_speed_ms)
        c.scene_index = index
        c.script = script
        c.first_line_of_scene = False
        c.busy = c.typing = c.skip_requested = False
        c.fading = c.transitioning = False
        c.auto_mode = c.skip_mode = False
        c.hidden = False
        self.surface.set_shake(None)
        self.surface.apply_snapshot(record.render.to_snapshot())
        self.surface.set_fade_opacity(FADE_READING)
        self.surface.set_text_visible(True)
        self.surface.set_controls_visible(True)
        c.phase = Phase.LINE_DISPATCH
        logger.debug(f"Loaded slot {slot}: {c.chapter}/{c.scene_ordinal} line {c.line_index}")
        return True

    # =========================================
    # Scene loading
    # =========================================

    def _load_scene(self, previous: Optional[str] = None) -> None:
        """Load the scene at the cursor, skipping broken files and rolling chapters over."""
        c = self.cursor
        if c.scene_index is None:
            self.exit_to_menu(reason="no_content")
            return
        c.phase = Phase.SCENE_LOADING
        while True:
            file_id = c.scene_index.scene_file(c.chapter, c.scene_ordinal)
            if file_id is None:
                nxt = c.scene_index.next_chapter(c.chapter)
                if nxt is None:
                    logger.info("Content finished")
                    self.exit_to_menu(reason="content_end")
                    return
                c.phase = Phase.CHAPTER_ROLLOVER
                c.chapter = nxt
                c.scene_ordinal = 0
                logger.debug(f"Chapter rollover to {nxt}")
                self._emit(ChapterStartEvent(chapter=nxt))
                c.phase = Phase.SCENE_LOADING
                continue
            try:
                script = self.repository.get_scene_script(file_id)
            except ScriptError as e:
                logger.warning(f"Skipping scene {file_id}: {e}")
                self._emit(ErrorEvent(kind="content", message=str(e)))
                c.scene_ordinal += 1
                continue
            break

        c.script = script
        self._init_scene()
        if previous is not None:
            self._emit(SceneTransitionEvent(from_scene=previous, to_scene=file_id))
        self._emit(SceneLoadEvent(chapter=c.chapter or "", scene_ordinal=c.scene_ordinal,
                                  file_id=file_id, line_count=len(script)))
        c.phase = Phase.LINE_DISPATCH
        self._show_next()

    def _init_scene(self) -> None:
        c = self.cursor
        c.line_index = 0
        c.char_count = 0
        c.first_line_of_scene = True
        first = c.script.line_at(0) if c.script is not None else None
        if first is None:
            self.surface.set_character(None)
        elif isinstance(first, Dialogue):
            # the first line's scenery is shown at once, so its crossfade is a no-op
            if first.background:
                self._preload(first.background)
                self.surface.set_background(first.background)
            if first.character:
                self._preload(first.character)
                self.surface.set_character(first.character)
                self.surface.set_character_position(first.position or DEFAULT_POSITION)
            elif first.character == "":
                self.surface.set_character(None)
        self.surface.set_fade_opacity(FADE_OPAQUE)
        self.surface.clear_text()

    # =========================================
    # Dispatch
    # =========================================

    def _show_next(self) -> None:
        c = self.cursor
        if c.busy or c.hidden or c.transitioning or c.phase is Phase.IDLE:
            return
        c.busy = True
        self._task = self.scheduler.spawn(self._dispatch(), name="dispatch")

    def _dispatch(self) -> TaskBody:
        c = self.cursor
        try:
            while True:
                directive = None if c.scene_exhausted else c.script.line_at(c.line_index)
                if directive is None:
                    yield from self._end_scene()
                    return
                if not is_instantaneous(directive):
                    yield from self._play_dialogue(directive)
                    return
                c.phase = Phase.EFFECT_RUNNING
                try:
                    yield from self._play_instant(directive)
                except Exception:
                    logger.exception(f"Directive {directive!r} failed")
                c.line_index += 1
                c.phase = Phase.LINE_DISPATCH
                # release the guard between chained lines
                c.busy = False
                if c.hidden or c.transitioning or c.phase is Phase.IDLE:
                    return
                c.busy = True
        finally:
            c.busy = False
            if c.phase in (Phase.EFFECT_RUNNING, Phase.TYPING_RUNNING):
                c.phase = Phase.LINE_DISPATCH

    def _play_instant(self, directive: LineDirective) -> TaskBody:
        c = self.cursor
        if isinstance(directive, Clear):
            self.surface.clear_text()
            c.char_count = 0
        elif isinstance(directive, Shake):
            yield from self.shaker.perform(directive.intensity)
        elif isinstance(directive, AudioPlay):
            yield from self.audio.play(directive.path, directive.loop_count)
        elif isinstance(directive, AudioStop):
            self.audio.stop()

    def _play_dialogue(self, line: Dialogue) -> TaskBody:
        c = self.cursor
        c.phase = Phase.EFFECT_RUNNING
        if line.background:
            try:
                yield from self.backgrounds.transition_to(line.background)
            except Exception:
                logger.exception(f"Background transition to {line.background} failed")
        self._update_character(line)
        if c.first_line_of_scene:
            yield from self._fade("in")
            c.first_line_of_scene = False

        c.phase = Phase.TYPING_RUNNING
        text = line.text or ""
        self._accumulate(text)
        self.surface.begin_line()
        self._emit(TextShowEvent(text=text, chapter=c.chapter or "",
                                 scene_ordinal=c.scene_ordinal, line_index=c.line_index))
        if c.skip_mode:
            self.surface.update_line(text)
            c.typing = False
            c.line_index += 1
            self._schedule_continuation(self.config.skip_delay_ms, "skip")
            return
        yield from self.typewriter.reveal(text, self.surface.update_line, c)
        c.line_index += 1
        if c.skip_mode:
            self._schedule_continuation(self.config.skip_delay_ms, "skip")
        elif c.auto_mode:
            self._schedule_continuation(c.auto_speed_ms, "auto")

    def _accumulate(self, text: str) -> None:
        """Clear the text area when the new line would overflow it."""
        c = self.cursor
        if c.char_count + len(text) > self.config.char_limit:
            self.surface.clear_text()
            c.char_count = 0
        c.char_count += len(text)

    def _update_character(self, line: Dialogue) -> None:
        if line.character:
            self._preload(line.character)
            self.surface.set_character(line.character)
        elif line.character == "":
            self.surface.set_character(None)
        if line.position:
            self.surface.set_character_position(line.position)
        elif self.surface.get_character_position() is None:
            self.surface.set_character_position(DEFAULT_POSITION)

    def _end_scene(self) -> TaskBody:
        c = self.cursor
        c.phase = Phase.SCENE_ENDING
        yield from self._fade("out")
        self.surface.clear_text()
        c.transitioning = True
        previous = c.script.file_id if c.script is not None else None
        self._scene_timer = self.scheduler.call_later(
            self.config.scene_transition_delay_ms,
            lambda: self._after_scene_transition(previous),
        )

    def _after_scene_transition(self, previous: Optional[str]) -> None:
        self._scene_timer = None
        c = self.cursor
        c.transitioning = False
        c.scene_ordinal += 1
        self._load_scene(previous=previous)

    def _fade(self, direction: str) -> TaskBody:
        c = self.cursor
        c.fading = True
        self._emit(FadeEffectEvent(direction=direction, duration_ms=self.config.fade_duration_ms))
        try:
            yield from fade(surface=self.surface, direction=direction,
                            duration_ms=self.config.fade_duration_ms, frame_ms=self.config.frame_ms)
        finally:
            c.fading = False

    # =========================================
    # Timers & helpers
    # =========================================

    def _waiting_on_reader(self) -> bool:
        """True when a dialogue line is fully shown and nothing else is running."""
        c = self.cursor
        return not (c.phase is Phase.IDLE or c.busy or c.typing or c.hidden
                    or c.fading or c.transitioning)

    def _schedule_continuation(self, delay_ms: int, mode: str) -> None:
        self._cancel_continuation()
        c = self.cursor

        def fire() -> None:
            self._continuation = None
            still_on = c.auto_mode if mode == "auto" else c.skip_mode
            if still_on:
                self._show_next()

        self._continuation = self.scheduler.call_later(delay_ms, fire)

    def _cancel_continuation(self) -> None:
        if self._continuation is not None:
            self._continuation.cancel()
            self._continuation = None

    def _cancel_pending(self) -> None:
        self._cancel_continuation()
        if self._scene_timer is not None:
            self._scene_timer.cancel()
            self._scene_timer = None
        if self._task is not None and not self._task.done:
            self._task.cancel()
        self._task = None
        self.cursor.busy = False
        self.cursor.typing = False

    def _preload(self, path: str) -> None:
        try:
            self.images.load(path)
        except AssetLoadFailure as e:
            logger.warning(f"Image preload failed: {e}")
            self._emit(ErrorEvent(kind="asset", message=f"image not loaded: {path}"))

    def _stored_auto_speed(self) -> int:
        return load_auto_speed(self.store, self.config.default_auto_speed_ms)

    def _emit(self, event) -> None:
        self.events.emit(event)
