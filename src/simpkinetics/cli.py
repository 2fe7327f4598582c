"""Command-line entrypoints for SimpKinetics."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import fields
from pathlib import Path
from typing import Annotated, Any, Dict

import typer

from simpkinetics.errors import ConfigurationError, OptionsError, SimpKineticsError
from simpkinetics.kinetics import (
    ArrheniusKinetics,
    LHHWKinetics,
    PowerLawKinetics,
)
from simpkinetics.models import Reaction, Species
from simpkinetics.options import EquilibriumOptions, KineticOptions, ODEOptions, OutputOptions
from simpkinetics.path import KineticPath
from simpkinetics.persistence import sqlite_store
from simpkinetics.plotting import plot_profile, save_profile_plot
from simpkinetics.reactions import ReactionSystem
from simpkinetics.state import ChemicalState
from simpkinetics.system import ChemicalSystem
from simpkinetics.thermo import IdealGasThermo, SpeciesProperties
from simpkinetics.units import convert

app = typer.Typer(add_completion=False)


def _parse_arrhenius(data: Dict[str, Any]) -> ArrheniusKinetics:
    return ArrheniusKinetics(
        pre_exponential=float(data["A"]),
        activation_energy=float(data.get("Ea", 0.0)),
    )


def _parse_kinetics(data: Dict[str, Any]) -> Any:
    k_type = data.get("type", "power_law").lower()
    arrhenius = _parse_arrhenius(data["arrhenius"])
    basis = data.get("basis", "amount")

    if k_type == "power_law":
        reverse = data.get("reverse")
        return PowerLawKinetics(
            arrhenius=arrhenius,
            exponents=data.get("exponents", {}),
            reverse=_parse_arrhenius(reverse["arrhenius"]) if reverse else None,
            reverse_exponents=reverse.get("exponents", {}) if reverse else {},
            basis=basis,
        )
    elif k_type == "lhhw":
        ads_consts = {
            sp: _parse_arrhenius(p) for sp, p in data.get("adsorption_constants", {}).items()
        }
        return LHHWKinetics(
            arrhenius=arrhenius,
            numerator_exponents=data.get("numerator_exponents", {}),
            adsorption_constants=ads_consts,
            denominator_exponent=float(data.get("denominator_exponent", 1.0)),
            basis=basis,
        )
    else:
        raise ConfigurationError(f"Unknown kinetics type: {k_type}")


def _parse_thermo(data: Dict[str, Any] | None) -> IdealGasThermo | None:
    if not data:
        return None
    props = {}
    for name, p in data.get("species", {}).items():
        props[name] = SpeciesProperties(
            molecular_weight=float(p.get("mw", 0.0)),
            heat_capacity=float(p.get("cp", 0.0)),
            heat_of_formation=float(p["h_form"]),
            entropy=float(p.get("s0", 0.0)),
        )
    return IdealGasThermo(props)


def _parse_reactions(config: Dict[str, Any]) -> ReactionSystem:
    species = [
        Species(
            name=s["name"],
            formula=s.get("formula", s["name"]),
            phase=s.get("phase", "gas"),
            elements=s.get("elements", {}),
        )
        for s in config["species"]
    ]
    system = ChemicalSystem(species, thermo=_parse_thermo(config.get("thermo")))
    reactions = [
        Reaction(
            name=r["name"],
            stoichiometry=r["stoichiometry"],
            kinetics=_parse_kinetics(r["kinetics"]),
            reversible="reverse" in r["kinetics"],
        )
        for r in config.get("reactions", [])
    ]
    return ReactionSystem(system, reactions)


def _build_options(cls: type, data: Dict[str, Any]) -> Any:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise OptionsError(f"Unknown {cls.__name__} keys: {unknown}")
    return cls(**data)


def _parse_options(config: Dict[str, Any]) -> KineticOptions:
    solver = config.get("solver", {})
    depletion = config.get("depletion", {})
    output = config.get("output")
    return KineticOptions(
        ode=_build_options(ODEOptions, solver),
        equilibrium=_build_options(EquilibriumOptions, config.get("equilibrium", {})),
        output=OutputOptions(
            active=True,
            terminal=bool(output.get("terminal", False)),
            file=output.get("file"),
            quantities=tuple(output.get("quantities", ("t",))),
            header=tuple(output["header"]) if output.get("header") else None,
        )
        if output
        else OutputOptions(),
        depletion_threshold=float(depletion.get("threshold", KineticOptions.depletion_threshold)),
        relative_depletion=bool(depletion.get("relative", False)),
    )


def _parse_state(system: ChemicalSystem, data: Dict[str, Any]) -> ChemicalState:
    state = ChemicalState(
        system,
        temperature=float(data.get("T", 298.15)),
        pressure=float(data.get("P", 1.0e5)),
    )
    unit = data.get("unit", "mol")
    for name, amount in data.get("amounts", {}).items():
        state.set_species_amount(name, float(amount), unit)
    return state


@app.callback()
def main(
    log_level: Annotated[str, typer.Option(help="Logging level.")] = "WARNING",
) -> None:
    """Kinetic paths with partial equilibrium."""
    logging.basicConfig(level=log_level.upper(), format="%(levelname)s %(name)s: %(message)s")


@app.command()
def run(
    config_file: Annotated[
        Path, typer.Argument(help="Path to JSON configuration file.")
    ],
    output: Annotated[
        Path | None, typer.Option(help="Path to save output JSON.")
    ] = None,
    project_file: Annotated[
        Path | None,
        typer.Option(help="Optional .skproj file to persist results."),
    ] = None,
) -> None:
    """Run a kinetic path from a config file."""
    try:
        with open(config_file, "r") as f:
            config = json.load(f)
        reactions = _parse_reactions(config)
        options = _parse_options(config)
        path = KineticPath(reactions, options, partition=config.get("partition"))
        state = _parse_state(reactions.system, config.get("state", {}))

        time_config = config.get("time", {})
        unit = time_config.get("unit", "s")
        t0 = convert(float(time_config.get("start", 0.0)), unit, "s")
        dt = convert(float(time_config["duration"]), unit, "s")

        started = time.perf_counter()
        path.solve(state, t0, dt)
        duration_ms = int((time.perf_counter() - started) * 1000.0)
    except SimpKineticsError as error:
        typer.echo(f"Error: {error}", err=True)
        raise typer.Exit(code=1)
    except KeyError as error:
        typer.echo(f"Error: missing configuration key {error}", err=True)
        raise typer.Exit(code=1)
    except (OSError, ValueError, TypeError, AttributeError) as error:
        typer.echo(f"Error: invalid configuration: {error}", err=True)
        raise typer.Exit(code=1)

    payload: Dict[str, Any] = {
        "t": t0 + dt,
        "T": state.temperature,
        "P": state.pressure,
        "species": {
            name: float(amount) for name, amount in zip(reactions.system.species_names, state.amounts)
        },
        "partition": {
            "kinetic": [reactions.system.species[i].name for i in path.partition.kinetic_species],
            "equilibrium": [reactions.system.species[i].name for i in path.partition.equilibrium_species],
        },
    }
    if path.output is not None:
        payload["records"] = path.output.records

    if project_file is not None:
        connection = sqlite_store.connect(project_file)
        sqlite_store.ensure_schema(connection)
        project_id = sqlite_store.create_project(
            connection,
            name=config.get("name", Path(config_file).stem),
            notes="Created by the SimpKinetics CLI.",
        )
        sqlite_store.save_reactions(connection, project_id, reactions)
        run_id = sqlite_store.save_run(
            connection,
            project_id=project_id,
            model={
                "species": config["species"],
                "reactions": config.get("reactions", []),
                "partition": payload["partition"],
            },
            solver={
                "ode": config.get("solver", {}),
                "equilibrium": config.get("equilibrium", {}),
                "depletion": config.get("depletion", {}),
            },
            manifest={"final_state": payload["species"], "t": payload["t"]},
            duration_ms=duration_ms,
        )
        if path.output is not None:
            sqlite_store.save_output(connection, run_id, path.output)
        connection.close()
        payload["run_id"] = run_id

    json_output = json.dumps(payload, indent=2)
    typer.echo(json_output)

    if output:
        with open(output, "w") as f:
            f.write(json_output)


@app.command()
def plot(
    project_file: Annotated[Path, typer.Argument(help="Path to a .skproj file.")],
    image: Annotated[Path, typer.Option(help="Path of the PNG to write.")] = Path("profile.png"),
    run_id: Annotated[int | None, typer.Option(help="Run to plot; the latest by default.")] = None,
    log_y: Annotated[bool, typer.Option(help="Logarithmic y axis.")] = False,
) -> None:
    """Plot the stored output profile of a run."""
    connection = sqlite_store.connect(project_file)
    try:
        if run_id is None:
            run_id = sqlite_store.latest_run_id(connection)
        if run_id is None:
            typer.echo("No runs stored in the project.", err=True)
            raise typer.Exit(code=1)
        x_values, series, units = sqlite_store.load_profile(connection, run_id)
    finally:
        connection.close()

    if not series:
        typer.echo(f"Run {run_id} has no output profile.", err=True)
        raise typer.Exit(code=1)
    time_names = [name for name in series if name.split(":")[0] in ("t", "time")]
    for name in time_names:
        series.pop(name)
    xlabel = f"Time ({units[time_names[0]]})" if time_names else "Step"
    figure = plot_profile(x_values, series, xlabel=xlabel, units=units, log_y=log_y)
    typer.echo(str(save_profile_plot(figure, image)))
