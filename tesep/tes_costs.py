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

# TES objective terms.  Fixed costs are annual; in multi-stage runs they are
# divided by the stage multiplier here because the assembled objective is
# multiplied by it once.

from pyomo.environ import *
import logging

from tesep.contributions import Contribution, OBJECTIVE
from tesep.tes_data import ModelScalingFactor

logger = logging.getLogger(__name__)


def add_cost_contributions(b):
    """Add investment, fixed, variable and fuel-credit expressions.

    :param b: TES block
    :return: list of Contribution to the objective
    """
    m = b.model()
    logger.info("TES Cost Module")

    if m.config["multi_stage"]:
        fixed_cost_scale = 1 / m.config["opex_multiplier"]
    else:
        fixed_cost_scale = 1

    @b.Expression(m.storageUnits)
    def investmentCost(b, unit):
        cost = 0
        if unit in m.newPowerStorage:
            cost += m.powerInvestmentCost[unit] * b.builtPowerCapacity[unit]
        if unit in m.newEnergyStorage:
            cost += m.energyInvestmentCost[unit] * b.builtEnergyCapacity[unit]
        if unit in m.newChargeStorage:
            cost += m.chargeInvestmentCost[unit] * b.builtChargeCapacity[unit]
        return cost

    @b.Expression(m.storageUnits)
    def fixedOMCost(b, unit):
        cost = (
            m.powerFixedCost[unit] * b.totalPowerCapacity[unit]
            + m.energyFixedCost[unit] * b.totalEnergyCapacity[unit]
        )
        if unit in m.asymmetricStorage:
            cost += m.chargeFixedCost[unit] * b.totalChargeCapacity[unit]
        return cost

    @b.Expression()
    def fixedCost(b):
        return fixed_cost_scale * sum(
            b.investmentCost[unit] + b.fixedOMCost[unit] for unit in m.storageUnits
        )

    @b.Expression()
    def variableChargingCost(b):
        return sum(
            m.omega[hour] * m.chargingCost[unit] * b.charge[unit, hour]
            for unit in m.storageUnits
            for hour in m.hours
        )

    # use [MWh] / (MWh per MMBtu) * $/MMBtu; scaled runs keep costs in M$
    scale = ModelScalingFactor if m.config["parameter_scale"] else 1

    @b.Expression(m.storageUnits)
    def avoidedFuelCost(b, unit):
        return sum(
            m.omega[hour]
            * b.use[unit, hour]
            / m.mwhPerMMBtu[unit]
            * m.heatPrice[unit]
            / scale
            for hour in m.hours
        )

    @b.Expression()
    def fuelCredit(b):
        return -sum(b.avoidedFuelCost[unit] for unit in m.storageUnits)

    contributions = [
        Contribution(OBJECTIVE, "tes_fixed_cost", b.fixedCost),
        Contribution(OBJECTIVE, "tes_charging_cost", b.variableChargingCost),
        Contribution(OBJECTIVE, "tes_fuel_credit", b.fuelCredit),
    ]

    if len(m.reserveMarginStorage) > 0:

        @b.Expression()
        def virtualChargeDischargeCost(b):
            return sum(
                m.omega[hour]
                * m.config["virtual_charge_discharge_cost"]
                / scale
                * (b.reserveCharge[unit, hour] + b.reserveDischarge[unit, hour])
                for unit in m.reserveMarginStorage
                for hour in m.hours
            )

        contributions.append(
            Contribution(
                OBJECTIVE,
                "tes_virtual_charge_discharge_cost",
                b.virtualChargeDischargeCost,
            )
        )

    return contributions
