"""Sign-to-action mapping.

Maps emitted hand signs to actions:
- Sounds (played through an external player command)
- Shell commands
- Log lines

Configuration via the ``mappings:`` section of a YAML file.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Sequence

import yaml

from handsign.classifier import GestureLabel
from handsign.pipeline import GestureEvent

logger = logging.getLogger("handsign.actions")

# One note per sign. UNKNOWN deliberately has no entry.
DEFAULT_SOUNDS: dict[GestureLabel, str] = {
    GestureLabel.OPEN_PALM: "note_c",
    GestureLabel.CLOSED_FIST: "note_d",
    GestureLabel.POINTING_UP: "note_e",
    GestureLabel.VICTORY: "note_f",
    GestureLabel.THUMB_UP: "note_g",
    GestureLabel.PINKY_OUT: "note_a",
    GestureLabel.ROCK_ON: "note_b",
}

SOUND_EXTENSIONS = (".wav", ".ogg", ".mp3")


class ActionType(Enum):
    SOUND = "sound"
    SHELL = "shell"
    LOG = "log"


@dataclass
class Action:
    """A single action to run when a sign is emitted."""
    type: ActionType
    params: dict[str, Any] = field(default_factory=dict)
    description: str = ""

    def to_dict(self) -> dict:
        data = {"type": self.type.value, "params": self.params}
        if self.description:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Action:
        return cls(
            type=ActionType(data["type"]),
            params=data.get("params", {}),
            description=data.get("description", ""),
        )


@dataclass
class GestureMapping:
    """Maps a sign label to one or more actions."""
    trigger: str
    actions: list[Action]
    enabled: bool = True


class SoundBank:
    """Resolves sound ids to files and plays them with a player command.

    ``player`` is an argv prefix; the file path is appended. The default
    uses ALSA's ``aplay``.
    """

    def __init__(
        self,
        sounds_dir: str | Path = "sounds",
        player: Sequence[str] | str = ("aplay", "-q"),
    ):
        self.sounds_dir = Path(sounds_dir)
        self.player = shlex.split(player) if isinstance(player, str) else list(player)

    def resolve(self, sound_id: str) -> Optional[Path]:
        for ext in SOUND_EXTENSIONS:
            path = self.sounds_dir / f"{sound_id}{ext}"
            if path.exists():
                return path
        return None

    async def play(self, sound_id: str) -> bool:
        path = self.resolve(sound_id)
        if path is None:
            logger.warning("Sound %s not found in %s", sound_id, self.sounds_dir)
            return False

        proc = await asyncio.create_subprocess_exec(
            *self.player, str(path),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await proc.communicate()
        if proc.returncode != 0:
            logger.warning("Player %s failed: %s", self.player[0], stderr.decode(errors="replace").strip())
            return False
        return True


class ActionExecutor:
    """Executes actions triggered by sign events."""

    def __init__(self, sound_bank: Optional[SoundBank] = None, dry_run: bool = False):
        self.sound_bank = sound_bank or SoundBank()
        self.dry_run = dry_run

    async def execute(self, action: Action, context: dict | None = None) -> bool:
        """Execute a single action. Returns True on success."""
        if self.dry_run:
            logger.info("Dry run: %s %s (context: %s)", action.type.value, action.params, context)
            return True

        try:
            if action.type == ActionType.SOUND:
                sound = action.params.get("sound", "")
                return bool(sound) and await self.sound_bank.play(sound)
            elif action.type == ActionType.SHELL:
                return await self._exec_shell(action.params)
            elif action.type == ActionType.LOG:
                logger.info(
                    "Action LOG: %s (context: %s)",
                    action.params.get("message", "sign detected"),
                    context,
                )
                return True
        except OSError as e:
            logger.error("Action %s failed: %s", action.type.value, e)
            return False

        return False

    async def _exec_shell(self, params: dict) -> bool:
        """Run a shell command."""
        command = params.get("command", "")
        if not command:
            return False

        timeout = params.get("timeout", 10)
        proc = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        try:
            await asyncio.wait_for(proc.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            proc.kill()
            logger.warning("Shell command timed out: %s", command)
            return False
        logger.debug("Shell [%s] rc=%d", command, proc.returncode)
        return proc.returncode == 0


class ActionMapper:
    """Manages sign-to-action mappings and dispatches events.

    Load mappings from YAML:
        mapper = ActionMapper.from_yaml("handsign.yml")

    Dispatch on a pipeline event:
        await mapper.on_event(event)
    """

    def __init__(self, executor: Optional[ActionExecutor] = None):
        self._mappings: dict[str, GestureMapping] = {}
        self.executor = executor or ActionExecutor()

    def add_mapping(self, mapping: GestureMapping):
        self._mappings[str(mapping.trigger)] = mapping

    def get_mapping(self, trigger: str) -> Optional[GestureMapping]:
        return self._mappings.get(str(trigger))

    async def on_gesture(self, gesture: str, context: dict | None = None) -> list[bool]:
        """Dispatch actions for a sign. Returns list of success bools."""
        mapping = self._mappings.get(str(gesture))
        if not mapping or not mapping.enabled:
            return []

        ctx = {"gesture": str(gesture), **(context or {})}
        results = []
        for action in mapping.actions:
            results.append(await self.executor.execute(action, ctx))
        return results

    async def on_event(self, event: GestureEvent) -> list[bool]:
        previous = event.previous.value if event.previous else None
        return await self.on_gesture(
            event.gesture.value,
            context={"previous": previous, "timestamp": event.timestamp},
        )

    @classmethod
    def with_defaults(cls, executor: Optional[ActionExecutor] = None) -> ActionMapper:
        """One sound per sign, nothing for UNKNOWN."""
        mapper = cls(executor)
        for label, sound in DEFAULT_SOUNDS.items():
            mapper.add_mapping(GestureMapping(
                trigger=label.value,
                actions=[Action(type=ActionType.SOUND, params={"sound": sound})],
            ))
        return mapper

    @classmethod
    def from_yaml(cls, path: str | Path, executor: Optional[ActionExecutor] = None) -> ActionMapper:
        """Load mappings from the ``mappings:`` section of a YAML file.

        A file without that section gets the default sound table.
        """
        with open(path) as f:
            config = yaml.safe_load(f) or {}

        if executor is None:
            sound_cfg = config.get("sounds", {})
            bank = SoundBank(
                sounds_dir=sound_cfg.get("dir", "sounds"),
                player=sound_cfg.get("player", ("aplay", "-q")),
            )
            executor = ActionExecutor(sound_bank=bank)

        if "mappings" not in config:
            logger.info("No mappings in %s, using the default sound table", path)
            return cls.with_defaults(executor)

        mapper = cls(executor)
        for entry in config["mappings"] or []:
            trigger = entry["trigger"]
            if trigger not in GestureLabel.__members__:
                logger.warning("Mapping for unknown sign %s will never fire", trigger)
            mapper.add_mapping(GestureMapping(
                trigger=trigger,
                actions=[Action.from_dict(a) for a in entry.get("actions", [])],
                enabled=entry.get("enabled", True),
            ))

        return mapper

    def to_yaml(self, path: str | Path):
        """Save current mappings to YAML."""
        entries = []
        for mapping in self._mappings.values():
            entries.append({
                "trigger": mapping.trigger,
                "enabled": mapping.enabled,
                "actions": [a.to_dict() for a in mapping.actions],
            })

        with open(path, "w") as f:
            yaml.dump({"mappings": entries}, f, default_flow_style=False, sort_keys=False)

    @property
    def triggers(self) -> list[str]:
        return list(self._mappings.keys())
