#################################################################################
# The Institute for the Design of Advanced Energy Systems Integrated Platform
# Framework (IDAES IP) was produced under the DOE Institute for the
# Design of Advanced Energy Systems (IDAES).
#
# Copyright (c) 2018-2025 by the software owners: The Regents of the
# University of California, through Lawrence Berkeley National Laboratory,
# National Technology & Engineering Solutions of Sandia, LLC, Carnegie Mellon
# University, West Virginia University Research Corporation, et al.
# All rights reserved.  Please see the files COPYRIGHT.md and LICENSE.md
# for full copyright and license information.
#################################################################################

# Named contributions to the shared objective and system-wide balances.
# Components return Contribution tuples; the assembler below is the only
# place where shared objective/balance components are created.

from collections import namedtuple
import logging

from pyomo.environ import Constraint, Expression

logger = logging.getLogger(__name__)

Contribution = namedtuple("Contribution", ["target", "name", "expr"])

OBJECTIVE = "objective"
POWER_BALANCE = "power_balance"
CAPACITY_RESERVE_MARGIN = "capacity_reserve_margin"
ENERGY_SHARE_REQUIREMENT = "energy_share_requirement"
REGULATION_RESERVE = "regulation_reserve"
HOURLY_MATCHING_SUPPLY = "hourly_matching_supply"
HOURLY_MATCHING_DEMAND = "hourly_matching_demand"

TARGETS = (
    OBJECTIVE,
    POWER_BALANCE,
    CAPACITY_RESERVE_MARGIN,
    ENERGY_SHARE_REQUIREMENT,
    REGULATION_RESERVE,
    HOURLY_MATCHING_SUPPLY,
    HOURLY_MATCHING_DEMAND,
)


class ContributionRegistry:
    """Append-only collection of named contributions, grouped by target."""

    def __init__(self):
        self._by_target = {target: {} for target in TARGETS}

    def register(self, contributions):
        """Add contributions to the registry.

        :param contributions: iterable of Contribution tuples
        :raises ValueError: for an unknown target or a (target, name) pair
            that has already been registered
        """
        for contribution in contributions:
            if contribution.target not in self._by_target:
                raise ValueError(
                    f"Unknown contribution target '{contribution.target}' for '{contribution.name}'"
                )
            terms = self._by_target[contribution.target]
            if contribution.name in terms:
                raise ValueError(
                    f"Contribution '{contribution.name}' is already registered for '{contribution.target}'"
                )
            terms[contribution.name] = contribution.expr
            logger.debug("Registered %s -> %s", contribution.name, contribution.target)

    def names(self, target):
        return list(self._by_target[target])

    def terms(self, target):
        return list(self._by_target[target].values())

    def __len__(self):
        return sum(len(terms) for terms in self._by_target.values())


def _term_at(expr, index):
    # Indexed expressions are looked up at the balance index; scalar ones are
    # already summed over it.
    if hasattr(expr, "is_indexed") and expr.is_indexed():
        return expr[index]
    return expr


def _is_constant(expr):
    if type(expr) in (int, float):
        return True
    return expr.polynomial_degree() == 0


def assemble_objective(m, registry):
    """Sum every objective contribution into ``m.total_cost_objective_rule``.

    In multi-stage mode the assembled objective is multiplied by the
    inter-stage annuity factor once; components that already account for
    multiple years divide their fixed costs by it beforehand.
    """

    m.totalCost = Expression(expr=sum(registry.terms(OBJECTIVE)))

    @m.Objective()
    def total_cost_objective_rule(m):
        if m.config["multi_stage"]:
            return m.config["opex_multiplier"] * m.totalCost
        return m.totalCost


def assemble_balances(m, registry):
    """Create the system-wide balance constraints from registered terms.

    Balances tied to a policy are only created when that policy is enabled.
    """

    @m.Constraint(m.zones, m.hours)
    def power_balance(m, zone, hour):
        return (
            sum(_term_at(e, (zone, hour)) for e in registry.terms(POWER_BALANCE))
            == m.demand[zone, hour]
        )

    if m.config["capacity_reserve_margin"] > 0:

        @m.Constraint(m.capResConstraints, m.hours)
        def capacity_reserve_margin(m, res, hour):
            requirement = sum(
                m.capResMargin[zone, res] * m.demand[zone, hour] for zone in m.zones
            )
            return (
                sum(
                    _term_at(e, (res, hour))
                    for e in registry.terms(CAPACITY_RESERVE_MARGIN)
                )
                >= requirement
            )

    if m.config["energy_share_requirement"] >= 1:

        @m.Constraint(m.esrConstraints)
        def energy_share_requirement(m, esr):
            return (
                sum(_term_at(e, esr) for e in registry.terms(ENERGY_SHARE_REQUIREMENT))
                >= 0
            )

    if m.config["operational_reserves"]:

        @m.Constraint(m.hours)
        def regulation_reserve(m, hour):
            requirement = m.regulationRequirement * sum(
                m.demand[zone, hour] for zone in m.zones
            )
            return (
                sum(_term_at(e, hour) for e in registry.terms(REGULATION_RESERVE))
                >= requirement
            )

    if m.config["hourly_matching"]:

        @m.Constraint(m.tesZones, m.hours)
        def hourly_matching(m, zone, hour):
            supply = sum(
                _term_at(e, (zone, hour))
                for e in registry.terms(HOURLY_MATCHING_SUPPLY)
            )
            demand = sum(
                _term_at(e, (zone, hour))
                for e in registry.terms(HOURLY_MATCHING_DEMAND)
            )
            # no qualified supply or demand in this zone
            if _is_constant(supply) and _is_constant(demand):
                return Constraint.Skip
            return supply >= demand
