# Copyright 2025-2026 Dimensional Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from typing import Optional

from rich.console import Console
from rich.table import Table
import typer

from kincheck.control.collision_policy import CollisionType, CollisionTypes
from kincheck.control.factory import create_belief_settings, create_controller, create_goal_sampler
from kincheck.control.models import Disc, DiscCollisionWorld, PlanarArmKinematics
from kincheck.control.observers import LoggingObserver
from kincheck.control.spec import SingleResult
from kincheck.core.global_config import GlobalConfig
from kincheck.utils.logging_config import set_log_level
from kincheck.utils.transform_utils import pose_from_xyz_rpy

main = typer.Typer(help="Check reachability of a pose with a Jacobian controller.")
console = Console()


def _floats(text: str) -> list[float]:
    return [float(v) for v in text.split(",") if v.strip()]


def _parse_obstacle(text: str) -> tuple[str, Disc]:
    """NAME:X,Y,RADIUS"""
    try:
        name, values = text.split(":", 1)
        x, y, radius = _floats(values)
    except ValueError as e:
        raise typer.BadParameter(f"Obstacle must be NAME:X,Y,RADIUS, got {text!r}") from e
    return name, Disc(center=(x, y), radius=radius)


@main.callback()
def configure(
    ctx: typer.Context,
    delta: Optional[float] = typer.Option(None, help="Step magnitude / arrival threshold"),  # noqa: UP045
    maximum_steps: Optional[int] = typer.Option(None, help="Step budget"),  # noqa: UP045
    particles: Optional[int] = typer.Option(None, help="Particles of the belief run"),  # noqa: UP045
    initial_error: Optional[float] = typer.Option(None, help="Initial std error per joint"),  # noqa: UP045
    motion_error: Optional[float] = typer.Option(None, help="Motion std error per joint"),  # noqa: UP045
    seed: Optional[int] = typer.Option(None, help="Random seed"),  # noqa: UP045
    log_level: Optional[str] = typer.Option(None, help="Log level"),  # noqa: UP045
) -> None:
    overrides = {
        "delta": delta,
        "maximum_steps": maximum_steps,
        "number_of_particles": particles,
        "initial_std_error": initial_error,
        "joints_std_error": motion_error,
        "seed": seed,
        "log_level": log_level,
    }
    config = GlobalConfig(**{k: v for k, v in overrides.items() if v is not None})
    set_log_level(config.log_level)
    ctx.obj = config


@main.command()
def reach(
    ctx: typer.Context,
    x: float = typer.Argument(..., help="Target x"),
    y: float = typer.Argument(..., help="Target y"),
    yaw: float = typer.Option(0.0, help="Target yaw (radians)"),
    links: str = typer.Option("1,1,1,1", help="Comma separated link lengths"),
    start: Optional[str] = typer.Option(None, help="Comma separated start configuration"),  # noqa: UP045
    obstacle: list[str] = typer.Option([], help="Disc obstacle NAME:X,Y,RADIUS"),
    terminating: list[str] = typer.Option([], help="Obstacle whose contact ends the run"),
    required: list[str] = typer.Option([], help="Obstacle that must be touched"),
    prohibited: list[str] = typer.Option([], help="Obstacle that must not be touched"),
    sensorized: bool = typer.Option(True, help="Name links as sensorized"),
    belief: bool = typer.Option(False, help="Run the two-phase belief controller"),
    position_delta: float = typer.Option(0.0, help="Goal resampling range in x/y"),
) -> None:
    """Drive a planar arm toward (x, y, yaw) and print the outcome."""
    config: GlobalConfig = ctx.obj
    arm = PlanarArmKinematics(_floats(links))
    prefix = "link_sensor" if sensorized else "link"
    link_names = [f"{prefix}_{i}" for i in range(arm.dof)]
    world = DiscCollisionWorld(
        arm, dict(_parse_obstacle(o) for o in obstacle), link_names=link_names
    )

    collision_types = CollisionTypes()
    for flag, names in (("terminating", terminating), ("required", required), ("prohibited", prohibited)):
        for obstacle_name in names:
            for link in link_names:
                current = collision_types.get(link, obstacle_name)
                collision_types.set(
                    link,
                    obstacle_name,
                    CollisionType(
                        ignored=current.ignored,
                        prohibited=current.prohibited or flag == "prohibited",
                        terminating=current.terminating or flag == "terminating",
                        required=current.required or flag == "required",
                    ),
                )

    initial = _floats(start) if start else [0.3] * arm.dof
    target = pose_from_xyz_rpy([x, y, 0.0], [0.0, 0.0, yaw])
    controller = create_controller(arm, world, config, observer=LoggingObserver())

    if belief:
        belief_result = controller.move_belief(
            initial, target, collision_types, create_belief_settings(config, arm.dof)
        )
        _print_result("noiseless test", belief_result.no_noise_test_result)
        if belief_result.particle_results is not None:
            console.print(
                f"particles succeeded: {belief_result.success_ratio():.0%} "
                f"of {len(belief_result.particle_results)}"
            )
        raise typer.Exit(code=0 if belief_result.is_success() else 1)

    sampler = create_goal_sampler(controller, config, position_deltas=(position_delta, position_delta, 0.0))
    reachability = sampler.check(initial, target, collision_types)
    _print_result(f"attempt {reachability.attempts}", reachability.result)
    raise typer.Exit(code=0 if reachability.success else 1)


def _print_result(label: str, result: SingleResult) -> None:
    table = Table(title=label)
    table.add_column("outcome")
    table.add_column("steps", justify="right")
    table.add_column("final configuration")
    final = result.final_configuration
    table.add_row(
        result.description(),
        str(len(result.mean_trajectory) - 1),
        ", ".join(f"{v:.3f}" for v in final) if final is not None else "-",
    )
    console.print(table)


@main.command()
def show_config(ctx: typer.Context) -> None:
    """Show current configuration status."""
    config: GlobalConfig = ctx.obj

    for field_name, value in config.model_dump().items():
        typer.echo(f"{field_name}: {value}")


if __name__ == "__main__":
    main()
