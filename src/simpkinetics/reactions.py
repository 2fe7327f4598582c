"""Kinetically controlled reactions of a chemical system."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from simpkinetics.chemical import ChemicalVector
from simpkinetics.errors import ConfigurationError
from simpkinetics.kinetics import RateContext
from simpkinetics.models import Reaction
from simpkinetics.system import ChemicalSystem


class ReactionSystem:
    """A set of reactions with rate laws over a :class:`ChemicalSystem`.

    The stoichiometric matrix has one row per reaction and one column per
    species, so the species production rates are ``S.T @ r``.
    """

    def __init__(self, system: ChemicalSystem, reactions: Sequence[Reaction]):
        self.system = system
        self.reactions: tuple[Reaction, ...] = tuple(reactions)

        self._reaction_index: dict[str, int] = {}
        for i, reaction in enumerate(self.reactions):
            if reaction.name in self._reaction_index:
                raise ConfigurationError(f"Duplicate reaction name {reaction.name!r}")
            if reaction.kinetics is None:
                raise ConfigurationError(f"Reaction {reaction.name!r} has no rate law")
            for species in set(reaction.stoichiometry) | reaction.kinetics.species():
                system.index_species(species)
            self._reaction_index[reaction.name] = i

        matrix = np.zeros((len(self.reactions), system.num_species))
        for i, reaction in enumerate(self.reactions):
            for species, coefficient in reaction.stoichiometry.items():
                matrix[i, system.index_species(species)] = coefficient
        matrix.flags.writeable = False
        self.stoichiometric_matrix = matrix

    @property
    def num_reactions(self) -> int:
        return len(self.reactions)

    def index_reaction(self, name: str) -> int:
        try:
            return self._reaction_index[name]
        except KeyError:
            raise ConfigurationError(f"Unknown reaction {name!r}") from None

    def rates(
        self,
        temperature: float,
        pressure: float,
        amounts: np.ndarray,
        activities: ChemicalVector,
    ) -> ChemicalVector:
        """Rates of all reactions (mol/s) and their derivatives w.r.t. species amounts."""
        context = RateContext(
            temperature=temperature,
            pressure=pressure,
            amounts=np.asarray(amounts, dtype=float),
            activities=activities,
            system=self.system,
        )
        scalars = [reaction.kinetics.rate(context) for reaction in self.reactions]
        return ChemicalVector.from_scalars(scalars, self.system.num_species)
