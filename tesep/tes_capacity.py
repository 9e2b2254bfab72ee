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

# TES capacity ledger: heat output (power), energy and charge capacity as
# existing + built - retired, with bounds and duration coupling.

from pyomo.environ import *
from pyomo.environ import units as u
import logging

logger = logging.getLogger(__name__)


def total_capacity(existing, built=0, retired=0):
    """Installed capacity after investment and retirement decisions.

    Ineligible units pass 0 for the decision they cannot make.
    """
    return existing + built - retired


def _add_capacity_leg(
    b, leg, units, new_units, retire_units, existing, min_cap, max_cap, cap_units
):
    """Add built/retired variables, the total expression and bounds for one leg.

    Components are named ``built<Leg>Capacity``, ``retired<Leg>Capacity``,
    ``total<Leg>Capacity`` and ``<leg>_capacity_*``.

    :param b: TES block
    :param leg: "Power", "Energy" or "Charge"
    :param units: units carrying this leg
    :param new_units: subset allowed to build
    :param retire_units: subset allowed to retire
    :param existing: {unit: existing capacity}
    :param min_cap: {unit: minimum total capacity}, zero or negative disables
    :param max_cap: {unit: maximum total capacity}, zero or negative disables
    :param cap_units: pyomo units of the capacity
    """
    m = b.model()
    name = leg.lower()

    built = Var(new_units, within=NonNegativeReals, initialize=0, units=cap_units)
    b.add_component(f"built{leg}Capacity", built)
    retired = Var(retire_units, within=NonNegativeReals, initialize=0, units=cap_units)
    b.add_component(f"retired{leg}Capacity", retired)

    # Multi-stage runs carry existing capacity as a variable pinned to the
    # value handed over from the previous stage
    if m.config["multi_stage"]:
        carried = {y: existing[y] for y in units}
        existing_var = Var(
            units, within=NonNegativeReals, initialize=carried, units=cap_units
        )
        b.add_component(f"existing{leg}Capacity", existing_var)
        b.add_component(
            f"{name}_existing_capacity_pin",
            Constraint(units, rule=lambda b, y: existing_var[y] == carried[y]),
        )
        existing = existing_var

    total = Expression(
        units,
        rule=lambda b, y: total_capacity(
            existing[y],
            built[y] if y in new_units else 0,
            retired[y] if y in retire_units else 0,
        ),
    )
    b.add_component(f"total{leg}Capacity", total)

    b.add_component(
        f"{name}_capacity_retirement_limit",
        Constraint(retire_units, rule=lambda b, y: retired[y] <= existing[y]),
    )
    b.add_component(
        f"{name}_capacity_max",
        Constraint(
            units,
            rule=lambda b, y: (
                total[y] <= max_cap[y] if max_cap[y] > 0 else Constraint.Skip
            ),
        ),
    )
    b.add_component(
        f"{name}_capacity_min",
        Constraint(
            units,
            rule=lambda b, y: (
                total[y] >= min_cap[y] if min_cap[y] > 0 else Constraint.Skip
            ),
        ),
    )


def add_capacity_ledger(b):
    """Add TES power, energy and charge capacity to the TES block.

    :param b: TES block
    :return: list of Contribution (the ledger contributes none directly;
        costs are assembled in tes_costs)
    """
    m = b.model()
    logger.info("TES Capacity Ledger Module")

    _add_capacity_leg(
        b,
        "Power",
        m.storageUnits,
        m.newPowerStorage,
        m.retirePowerStorage,
        m.existingPowerCap,
        m.minPowerCap,
        m.maxPowerCap,
        u.MW,
    )
    _add_capacity_leg(
        b,
        "Energy",
        m.storageUnits,
        m.newEnergyStorage,
        m.retireEnergyStorage,
        m.existingEnergyCap,
        m.minEnergyCap,
        m.maxEnergyCap,
        u.MW * u.hr,
    )
    _add_capacity_leg(
        b,
        "Charge",
        m.asymmetricStorage,
        m.newChargeStorage,
        m.retireChargeStorage,
        m.existingChargeCap,
        m.minChargeCap,
        m.maxChargeCap,
        u.MW,
    )

    # Duration bracket; TES energy is sized at max duration by construction
    @b.Constraint(m.storageUnits)
    def minimum_duration(b, unit):
        return (
            b.totalEnergyCapacity[unit]
            >= m.minDuration[unit] * b.totalPowerCapacity[unit]
        )

    @b.Constraint(m.storageUnits)
    def maximum_duration(b, unit):
        return (
            b.totalEnergyCapacity[unit]
            <= m.maxDuration[unit] * b.totalPowerCapacity[unit]
        )

    @b.Constraint(m.storageUnits)
    def energy_power_ratio(b, unit):
        return (
            b.totalEnergyCapacity[unit]
            == m.maxDuration[unit] * b.totalPowerCapacity[unit]
        )

    # No independent sizing of the charge leg
    @b.Constraint(m.asymmetricStorage)
    def charge_power_ratio(b, unit):
        return (
            b.totalChargeCapacity[unit]
            == m.config["charge_capacity_ratio"] * b.totalPowerCapacity[unit]
        )

    logger.debug(
        "Capacity ledger: %d new-build, %d retirable, %d with charge capacity",
        len(m.newPowerStorage),
        len(m.retirePowerStorage),
        len(m.asymmetricStorage),
    )
    return []
