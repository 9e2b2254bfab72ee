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

# Hourly TES operation inside each representative period.  TES draws
# electricity (charge), stores it as heat and releases it as "use"; it never
# injects electrical power back into the grid.

from pyomo.environ import *
from pyomo.environ import units as u
import logging

from tesep.contributions import (
    Contribution,
    POWER_BALANCE,
    CAPACITY_RESERVE_MARGIN,
    ENERGY_SHARE_REQUIREMENT,
    REGULATION_RESERVE,
    HOURLY_MATCHING_DEMAND,
)
from tesep.time_domain import hours_before

logger = logging.getLogger(__name__)


def add_dispatch_variables(b):
    """Add hourly TES operating variables.

    :param b: TES block
    :return: None
    """
    m = b.model()

    b.stateOfCharge = Var(
        m.storageUnits,
        m.hours,
        domain=NonNegativeReals,
        initialize=0,
        units=u.MW * u.hr,
    )
    b.charge = Var(
        m.storageUnits, m.hours, domain=NonNegativeReals, initialize=0, units=u.MW
    )
    b.use = Var(
        m.storageUnits, m.hours, domain=NonNegativeReals, initialize=0, units=u.MW
    )
    # Electrical output; always zero for TES but kept so TES enters the power
    # balance like any other resource
    b.power = Var(
        m.storageUnits, m.hours, domain=NonNegativeReals, initialize=0, units=u.MW
    )

    # Shadow ledger of energy held back for the capacity reserve margin
    b.reserveCharge = Var(
        m.reserveMarginStorage,
        m.hours,
        domain=NonNegativeReals,
        initialize=0,
        units=u.MW,
    )
    b.reserveDischarge = Var(
        m.reserveMarginStorage,
        m.hours,
        domain=NonNegativeReals,
        initialize=0,
        units=u.MW,
    )
    b.reserveStateOfCharge = Var(
        m.reserveMarginStorage,
        m.hours,
        domain=NonNegativeReals,
        initialize=0,
        units=u.MW * u.hr,
    )

    b.regulationCharge = Var(
        m.regulationStorage,
        m.hours,
        domain=NonNegativeReals,
        initialize=0,
        units=u.MW,
    )


def add_dispatch_constraints(b):
    """Add state of charge recursion, output limits and output coupling.

    :param b: TES block with capacity and dispatch variables
    :return: None
    """
    m = b.model()
    L = m.hoursPerSubperiod

    # Units on the inter-period ledger get their first-hour balance there
    @b.Constraint(m.startHours, m.shortDurationStorage)
    def state_of_charge_start(b, hour, unit):
        last = hour + L - 1
        return b.stateOfCharge[unit, hour] == (
            b.stateOfCharge[unit, last]
            - b.use[unit, hour] / m.dischargeEfficiency[unit]
            + b.charge[unit, hour]
            - m.selfDischarge[unit] * b.stateOfCharge[unit, last]
        )

    @b.Constraint(m.interiorHours, m.storageUnits)
    def state_of_charge_interior(b, hour, unit):
        return b.stateOfCharge[unit, hour] == (
            b.stateOfCharge[unit, hour - 1]
            - b.use[unit, hour] / m.dischargeEfficiency[unit]
            + m.chargeEfficiency[unit] * b.charge[unit, hour]
            - m.selfDischarge[unit] * b.stateOfCharge[unit, hour - 1]
        )

    @b.Constraint(m.storageUnits, m.hours)
    def energy_capacity_limit(b, unit, hour):
        return b.stateOfCharge[unit, hour] <= b.totalEnergyCapacity[unit]

    def _discharge(b, unit, hour):
        if unit in m.reserveMarginStorage:
            return b.use[unit, hour] + b.reserveDischarge[unit, hour]
        return b.use[unit, hour]

    @b.Constraint(m.storageUnits, m.hours)
    def use_power_limit(b, unit, hour):
        return _discharge(b, unit, hour) <= b.totalPowerCapacity[unit]

    @b.Constraint(m.storageUnits, m.hours)
    def use_inventory_limit(b, unit, hour):
        before = hours_before(L, hour)
        return (
            _discharge(b, unit, hour)
            <= b.stateOfCharge[unit, before] * m.dischargeEfficiency[unit]
        )

    # Must-run while charged: heat output follows inventory
    @b.Constraint(m.storageUnits, m.hours)
    def minimum_output_coupling(b, unit, hour):
        return b.use[unit, hour] >= b.stateOfCharge[unit, hour] / m.maxDuration[unit]

    # Annual capacity factor floor; its dual is the implicit heat price
    @b.Constraint(m.storageUnits)
    def annual_minimum_output(b, unit):
        return sum(m.omega[hour] * b.use[unit, hour] for hour in m.hours) >= sum(
            m.omega[hour] * m.minOutputFraction[unit] * b.totalPowerCapacity[unit]
            for hour in m.hours
        )

    @b.Constraint(m.storageUnits, m.hours)
    def no_power_output(b, unit, hour):
        return b.power[unit, hour] == 0

    if len(m.regulationStorage) > 0:

        @b.Constraint(m.regulationStorage, m.hours)
        def regulation_charge_limit(b, unit, hour):
            if unit in m.asymmetricStorage:
                capacity = b.totalChargeCapacity[unit]
            else:
                capacity = b.totalPowerCapacity[unit]
            return b.regulationCharge[unit, hour] <= m.regulationMax[unit] * capacity


def add_reserve_shadow_constraints(b):
    """Recursion for energy held in reserve; discharge adds, charge removes.

    :param b: TES block
    :return: None
    """
    m = b.model()
    L = m.hoursPerSubperiod
    cyclic = [unit for unit in m.reserveMarginStorage if unit in m.shortDurationStorage]

    @b.Constraint(m.startHours, cyclic)
    def reserve_state_of_charge_start(b, hour, unit):
        last = hour + L - 1
        return b.reserveStateOfCharge[unit, hour] == (
            b.reserveStateOfCharge[unit, last]
            + b.reserveDischarge[unit, hour] / m.dischargeEfficiency[unit]
            - m.chargeEfficiency[unit] * b.reserveCharge[unit, hour]
            - m.selfDischarge[unit] * b.reserveStateOfCharge[unit, last]
        )

    @b.Constraint(m.interiorHours, m.reserveMarginStorage)
    def reserve_state_of_charge_interior(b, hour, unit):
        return b.reserveStateOfCharge[unit, hour] == (
            b.reserveStateOfCharge[unit, hour - 1]
            + b.reserveDischarge[unit, hour] / m.dischargeEfficiency[unit]
            - m.chargeEfficiency[unit] * b.reserveCharge[unit, hour]
            - m.selfDischarge[unit] * b.reserveStateOfCharge[unit, hour - 1]
        )

    @b.Constraint(m.reserveMarginStorage, m.hours)
    def reserve_within_inventory(b, unit, hour):
        return b.reserveStateOfCharge[unit, hour] <= b.stateOfCharge[unit, hour]


def add_dispatch_balance(b):
    """Add hourly TES dispatch to the TES block.

    :param b: TES block with capacity ledger
    :return: list of Contribution for the power balance and policy balances
    """
    m = b.model()
    logger.info("TES Storage Core Resources Module")

    add_dispatch_variables(b)
    add_dispatch_constraints(b)
    if len(m.reserveMarginStorage) > 0:
        add_reserve_shadow_constraints(b)

    # TES consumes electricity; its power output is pinned at zero
    @b.Expression(m.zones, m.hours)
    def powerBalanceTES(b, zone, hour):
        return sum(
            b.power[unit, hour] - b.charge[unit, hour]
            for unit in m.storageUnits
            if m.storageZone[unit] == zone
        )

    contributions = [Contribution(POWER_BALANCE, "tes_charging", b.powerBalanceTES)]

    if m.config["capacity_reserve_margin"] > 0:

        @b.Expression(m.capResConstraints, m.hours)
        def capacityReserveTES(b, res, hour):
            return sum(
                m.capResDerate[unit, res]
                * (
                    b.power[unit, hour]
                    - b.charge[unit, hour]
                    + b.reserveDischarge[unit, hour]
                    - b.reserveCharge[unit, hour]
                )
                for unit in m.reserveMarginStorage
            )

        contributions.append(
            Contribution(
                CAPACITY_RESERVE_MARGIN, "tes_capacity_reserve", b.capacityReserveTES
            )
        )

    if m.config["energy_share_requirement"] >= 1:

        # TES charging is demand that tagged ESR policies must cover
        @b.Expression(m.esrConstraints)
        def energyShareTES(b, esr):
            return -sum(
                m.omega[hour] * b.charge[unit, hour]
                for unit in m.storageUnits
                if m.esrTag[unit, esr] > 0
                for hour in m.hours
            )

        contributions.append(
            Contribution(ENERGY_SHARE_REQUIREMENT, "tes_charging_esr", b.energyShareTES)
        )

    if m.config["operational_reserves"]:

        @b.Expression(m.hours)
        def regulationTES(b, hour):
            return sum(b.regulationCharge[unit, hour] for unit in m.regulationStorage)

        contributions.append(
            Contribution(REGULATION_RESERVE, "tes_regulation", b.regulationTES)
        )

    if m.config["hourly_matching"]:
        matched = [
            unit
            for unit in m.qualifiedStorage
            if m.config["hourly_matching_long_duration"]
            or unit not in m.longDurationStorage
        ]

        @b.Expression(m.tesZones, m.hours)
        def hourlyMatchingTES(b, zone, hour):
            return sum(
                b.charge[unit, hour] for unit in matched if m.storageZone[unit] == zone
            )

        contributions.append(
            Contribution(
                HOURLY_MATCHING_DEMAND, "tes_charging_matched", b.hourlyMatchingTES
            )
        )

    logger.debug(
        "Dispatch: %d start hours, %d interior hours, %d cyclic units",
        len(m.startHours),
        len(m.interiorHours),
        len(m.shortDurationStorage),
    )
    return contributions
