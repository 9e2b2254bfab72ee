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

# Minimal zonal supply standing in for the rest of the power system: one
# priced, capacity-limited supply variable per zone and hour.

from pyomo.environ import *
from pyomo.environ import units as u
import logging

from tesep.contributions import (
    Contribution,
    OBJECTIVE,
    POWER_BALANCE,
    CAPACITY_RESERVE_MARGIN,
    ENERGY_SHARE_REQUIREMENT,
    REGULATION_RESERVE,
    HOURLY_MATCHING_SUPPLY,
)

logger = logging.getLogger(__name__)


def add_system_supply(m):
    """Add the zonal supply variables and their contributions.

    :param m: Pyomo model with sets and data references declared
    :return: list of Contribution
    """
    logger.info("Host System Supply Module")

    def supply_limits(m, zone, hour):
        return (0, m.supplyCapacity[zone])

    m.systemSupply = Var(
        m.zones,
        m.hours,
        domain=NonNegativeReals,
        bounds=supply_limits,
        initialize=0,
        units=u.MW,
    )

    @m.Expression()
    def systemSupplyCost(m):
        return sum(
            m.omega[hour] * m.supplyPrice[zone, hour] * m.systemSupply[zone, hour]
            for zone in m.zones
            for hour in m.hours
        )

    @m.Expression(m.zones, m.hours)
    def systemSupplyInjection(m, zone, hour):
        return m.systemSupply[zone, hour]

    contributions = [
        Contribution(OBJECTIVE, "system_supply_cost", m.systemSupplyCost),
        Contribution(POWER_BALANCE, "system_supply", m.systemSupplyInjection),
    ]

    if m.config["operational_reserves"]:

        # supply capacity left unused in an hour can be held for regulation
        @m.Expression(m.hours)
        def systemSupplyRegulation(m, hour):
            return sum(
                m.supplyCapacity[zone] - m.systemSupply[zone, hour] for zone in m.zones
            )

        contributions.append(
            Contribution(
                REGULATION_RESERVE, "system_supply_regulation", m.systemSupplyRegulation
            )
        )

    if m.config["hourly_matching"]:

        @m.Expression(m.tesZones, m.hours)
        def qualifiedSupply(m, zone, hour):
            if zone in m.qualifiedZones:
                return m.systemSupply[zone, hour]
            return 0

        contributions.append(
            Contribution(
                HOURLY_MATCHING_SUPPLY, "qualified_system_supply", m.qualifiedSupply
            )
        )

    if m.config["energy_share_requirement"] >= 1:

        # qualifying generation minus the share of demand it has to cover
        @m.Expression(m.esrConstraints)
        def systemSupplyEsr(m, esr):
            return sum(
                m.omega[hour]
                * (
                    m.zoneEsrEligible[zone, esr] * m.systemSupply[zone, hour]
                    - m.zoneEsrShare[zone, esr] * m.demand[zone, hour]
                )
                for zone in m.zones
                for hour in m.hours
            )

        contributions.append(
            Contribution(
                ENERGY_SHARE_REQUIREMENT, "system_supply_esr", m.systemSupplyEsr
            )
        )

    if m.config["capacity_reserve_margin"] > 0:

        @m.Expression(m.capResConstraints, m.hours)
        def systemSupplyCapacityReserve(m, res, hour):
            return sum(
                m.zoneCapResDerate[zone, res] * m.supplyCapacity[zone]
                for zone in m.zones
            )

        contributions.append(
            Contribution(
                CAPACITY_RESERVE_MARGIN,
                "system_supply_capacity_reserve",
                m.systemSupplyCapacityReserve,
            )
        )

    logger.debug("Registered %d host system contributions", len(contributions))
    return contributions
