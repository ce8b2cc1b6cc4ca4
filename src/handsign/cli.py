"""handsign CLI.

Usage:
    handsign classify      — Classify a single landmark frame
    handsign replay        — Replay a recorded session through the pipeline
    handsign benchmark     — Run performance benchmarks
    handsign mappings      — Show the sign-to-action table
    handsign init-config   — Write a default YAML config
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="handsign",
    help="Hand sign classification and stabilization engine.",
    add_completion=False,
)


@app.callback()
def main_options(
    log_level: str = typer.Option("warning", help="Log level"),
):
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(config: Optional[str]):
    from handsign.config import PipelineConfig

    if not config:
        return PipelineConfig()
    if not Path(config).exists():
        typer.echo(f"Config not found: {config}", err=True)
        raise typer.Exit(1)
    return PipelineConfig.from_yaml(config)


@app.command()
def classify(
    frame_file: str = typer.Argument(..., help="JSON file with a list of [x, y, z] points"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="YAML config"),
):
    """Classify one landmark frame and print the finger states."""
    from handsign.classifier import GestureClassifier
    from handsign.fingers import FINGERS

    path = Path(frame_file)
    if not path.exists():
        typer.echo(f"Frame file not found: {frame_file}", err=True)
        raise typer.Exit(1)

    with open(path) as f:
        data = json.load(f)
    points = data.get("landmarks", []) if isinstance(data, dict) else data

    classifier = GestureClassifier(_load_config(config))
    try:
        pose = classifier.pose(points)
    except ValueError as e:
        typer.echo(f"Bad landmark data: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Sign: {classifier.classify_pose(pose).value}")
    for name, is_open in zip(FINGERS, pose.fingers):
        typer.echo(f"   {name:7s} {'open' if is_open else 'closed'}")
    typer.echo(f"   thumb raised: {pose.thumb_raised}")


@app.command()
def replay(
    recording: str = typer.Argument(..., help="Path to recording file"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="YAML config with pipeline and mappings"),
    realtime: bool = typer.Option(False, help="Play at original timing"),
    speed: float = typer.Option(1.0, help="Playback speed multiplier"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Log actions instead of running them"),
):
    """Replay a recorded session through the pipeline and dispatch actions."""
    from handsign.actions import ActionExecutor, ActionMapper
    from handsign.pipeline import GesturePipeline
    from handsign.recorder import SessionPlayer

    path = Path(recording)
    if not path.exists():
        typer.echo(f"Recording not found: {recording}", err=True)
        raise typer.Exit(1)

    pipeline = GesturePipeline(config=_load_config(config))
    if config:
        mapper = ActionMapper.from_yaml(config)
        mapper.executor.dry_run = dry_run
    else:
        mapper = ActionMapper.with_defaults(ActionExecutor(dry_run=dry_run))

    player = SessionPlayer.load(path)
    typer.echo(f"Replaying {path.name} ({player.frame_count} frames, {player.duration:.1f}s)")

    async def run():
        start = time.monotonic()
        for frame in player.play():
            if realtime:
                delay = frame.timestamp / speed - (time.monotonic() - start)
                if delay > 0:
                    await asyncio.sleep(delay)
            event = pipeline.process_frame(frame.landmarks, timestamp=frame.timestamp)
            if event is None:
                continue
            results = await mapper.on_event(event)
            typer.echo(f"   {event.timestamp:7.3f}s  {event.gesture.value}  actions={results}")

    asyncio.run(run())

    stats = pipeline.stats
    typer.echo(
        f"\nDone. {stats.events_emitted} sign changes, "
        f"{stats.frames_classified} frames classified, {stats.frames_dropped} dropped."
    )


@app.command()
def benchmark(
    iterations: int = typer.Option(1000, help="Number of frames"),
    interval: float = typer.Option(0.033, help="Synthetic seconds between frames"),
):
    """Run performance benchmarks on the classifier and pipeline."""
    import numpy as np
    from handsign.pipeline import GesturePipeline

    typer.echo(f"Running benchmark: {iterations} frames, {interval * 1000:.0f}ms apart")

    rng = np.random.default_rng(42)
    frames = [rng.random((21, 3)) for _ in range(min(iterations, 64))]
    pipeline = GesturePipeline()

    times = []
    for i in range(iterations):
        t0 = time.perf_counter()
        pipeline.process_frame(frames[i % len(frames)], timestamp=i * interval)
        times.append(time.perf_counter() - t0)

    avg_ms = sum(times) / len(times) * 1000
    p95_ms = sorted(times)[int(len(times) * 0.95)] * 1000
    stats = pipeline.stats

    typer.echo("\nResults:")
    typer.echo(f"   Average latency: {avg_ms:.3f} ms")
    typer.echo(f"   P95 latency:     {p95_ms:.3f} ms")
    typer.echo(f"   Classified:      {stats.frames_classified}/{stats.frames_received}")
    typer.echo(f"   Sign changes:    {stats.events_emitted}")

    typer.echo("\nStage breakdown:")
    for name, s in stats.profiler_summary.items():
        typer.echo(f"   {name:15s} avg={s['avg_ms']:.3f}ms  p95={s['p95_ms']:.3f}ms  calls={s['calls']}")


@app.command()
def mappings(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="YAML config"),
):
    """Show which action each sign triggers."""
    from handsign.actions import ActionMapper
    from handsign.classifier import GestureLabel

    mapper = ActionMapper.from_yaml(config) if config else ActionMapper.with_defaults()
    for label in GestureLabel:
        mapping = mapper.get_mapping(label.value)
        if mapping is None:
            typer.echo(f"   {label.value:12s} -")
            continue
        actions = ", ".join(f"{a.type.value}:{json.dumps(a.params)}" for a in mapping.actions)
        state = "" if mapping.enabled else " (disabled)"
        typer.echo(f"   {label.value:12s} {actions}{state}")


@app.command("init-config")
def init_config(
    output: str = typer.Argument("handsign.yml", help="Where to write the config"),
    force: bool = typer.Option(False, help="Overwrite an existing file"),
):
    """Write a YAML config with the default tunables and sound table."""
    import yaml
    from handsign.actions import ActionMapper
    from handsign.config import PipelineConfig

    path = Path(output)
    if path.exists() and not force:
        typer.echo(f"{output} already exists (use --force)", err=True)
        raise typer.Exit(1)

    mapper = ActionMapper.with_defaults()
    data = {
        "pipeline": PipelineConfig().to_dict(),
        "sounds": {"dir": "sounds", "player": "aplay -q"},
        "mappings": [
            {
                "trigger": trigger,
                "actions": [a.to_dict() for a in mapper.get_mapping(trigger).actions],
            }
            for trigger in mapper.triggers
        ],
    }
    with open(path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
    typer.echo(f"Wrote {output}")


def main():
    app()


if __name__ == "__main__":
    main()
