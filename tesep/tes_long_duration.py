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

# Long-duration TES: an annual, chronologically ordered state of charge
# rebuilt from the representative periods through the period map.
#
# annualStateOfCharge[y, n]    inventory at the start of modeled period n
# periodInventoryChange[y, w]  net inventory change over representative period w
#
# Modeled periods form a closed loop; period n is followed by
# modeledPeriods.nextw(n) and the last one wraps back to the first.

from pyomo.environ import *
from pyomo.environ import units as u
import logging

from tesep.time_domain import subperiod_start, subperiod_end

logger = logging.getLogger(__name__)


def add_long_duration_variables(b):
    m = b.model()

    b.annualStateOfCharge = Var(
        m.longDurationStorage,
        m.modeledPeriods,
        domain=NonNegativeReals,
        initialize=0,
        units=u.MW * u.hr,
    )
    b.periodInventoryChange = Var(
        m.longDurationStorage,
        m.repPeriods,
        domain=Reals,
        initialize=0,
        units=u.MW * u.hr,
    )

    b.reserveLongDurationStorage = Set(
        within=m.longDurationStorage,
        initialize=[
            unit for unit in m.longDurationStorage if unit in m.reserveMarginStorage
        ],
    )
    b.reserveAnnualStateOfCharge = Var(
        b.reserveLongDurationStorage,
        m.modeledPeriods,
        domain=NonNegativeReals,
        initialize=0,
        units=u.MW * u.hr,
    )
    b.reservePeriodInventoryChange = Var(
        b.reserveLongDurationStorage,
        m.repPeriods,
        domain=Reals,
        initialize=0,
        units=u.MW * u.hr,
    )


def add_long_duration_constraints(b):
    m = b.model()
    L = m.hoursPerSubperiod

    # Replaces the cyclic first-hour balance: the period starts from where it
    # ends, less the net change the ledger attributes to it
    @b.Constraint(m.longDurationStorage, m.repPeriods)
    def long_duration_start(b, unit, rep):
        start = subperiod_start(L, rep)
        end = subperiod_end(L, rep)
        return b.stateOfCharge[unit, start] == (
            (1 - m.selfDischarge[unit])
            * (b.stateOfCharge[unit, end] - b.periodInventoryChange[unit, rep])
            - b.use[unit, start] / m.dischargeEfficiency[unit]
            + m.chargeEfficiency[unit] * b.charge[unit, start]
        )

    @b.Constraint(m.longDurationStorage, m.modeledPeriods)
    def long_duration_chaining(b, unit, period):
        following = m.modeledPeriods.nextw(period)
        return (
            b.annualStateOfCharge[unit, following]
            == b.annualStateOfCharge[unit, period]
            + b.periodInventoryChange[unit, m.periodMap[period]]
        )

    @b.Constraint(m.longDurationStorage, m.modeledPeriods)
    def long_duration_capacity_limit(b, unit, period):
        return b.annualStateOfCharge[unit, period] <= b.totalEnergyCapacity[unit]

    # Where a modeled period is itself representative, both ledgers must agree
    @b.Constraint(m.longDurationStorage, m.anchorPeriods)
    def long_duration_anchor(b, unit, period):
        rep = m.periodMap[period]
        return b.annualStateOfCharge[unit, period] == (
            b.stateOfCharge[unit, subperiod_end(L, rep)]
            - b.periodInventoryChange[unit, rep]
        )


def add_long_duration_reserve_constraints(b):
    """Same ledger for the energy held in reserve, with opposite flow signs."""
    m = b.model()
    L = m.hoursPerSubperiod

    @b.Constraint(b.reserveLongDurationStorage, m.repPeriods)
    def reserve_long_duration_start(b, unit, rep):
        start = subperiod_start(L, rep)
        end = subperiod_end(L, rep)
        return b.reserveStateOfCharge[unit, start] == (
            (1 - m.selfDischarge[unit])
            * (
                b.reserveStateOfCharge[unit, end]
                - b.reservePeriodInventoryChange[unit, rep]
            )
            + b.reserveDischarge[unit, start] / m.dischargeEfficiency[unit]
            - m.chargeEfficiency[unit] * b.reserveCharge[unit, start]
        )

    @b.Constraint(b.reserveLongDurationStorage, m.modeledPeriods)
    def reserve_long_duration_chaining(b, unit, period):
        following = m.modeledPeriods.nextw(period)
        return (
            b.reserveAnnualStateOfCharge[unit, following]
            == b.reserveAnnualStateOfCharge[unit, period]
            + b.reservePeriodInventoryChange[unit, m.periodMap[period]]
        )

    @b.Constraint(b.reserveLongDurationStorage, m.anchorPeriods)
    def reserve_long_duration_anchor(b, unit, period):
        rep = m.periodMap[period]
        return b.reserveAnnualStateOfCharge[unit, period] == (
            b.reserveStateOfCharge[unit, subperiod_end(L, rep)]
            - b.reservePeriodInventoryChange[unit, rep]
        )

    @b.Constraint(b.reserveLongDurationStorage, m.modeledPeriods)
    def reserve_within_annual_inventory(b, unit, period):
        return (
            b.annualStateOfCharge[unit, period]
            >= b.reserveAnnualStateOfCharge[unit, period]
        )


def add_long_duration_ledger(b):
    """Add the inter-period ledger for long-duration TES units.

    :param b: TES block with dispatch variables
    :return: list of Contribution (none; the ledger only links existing terms)
    """
    m = b.model()
    logger.info("TES Long Duration Storage Module")

    add_long_duration_variables(b)
    add_long_duration_constraints(b)
    if len(b.reserveLongDurationStorage) > 0:
        add_long_duration_reserve_constraints(b)

    logger.debug(
        "Long-duration ledger: %d units, %d modeled periods, anchors %s",
        len(m.longDurationStorage),
        len(m.modeledPeriods),
        list(m.anchorPeriods),
    )
    return []
