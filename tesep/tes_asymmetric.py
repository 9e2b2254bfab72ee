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

from pyomo.environ import *
import logging

logger = logging.getLogger(__name__)


def charging_draw(b, unit, hour):
    """Charging draw counted against the charge capacity of ``unit``.

    Reserve-margin virtual charging replaces the regulation term for units
    enrolled in both; a unit never carries both in the same envelope.
    """
    m = b.model()
    if unit in m.reserveMarginStorage:
        return b.charge[unit, hour] + b.reserveCharge[unit, hour]
    if unit in m.regulationStorage:
        return b.charge[unit, hour] + b.regulationCharge[unit, hour]
    return b.charge[unit, hour]


def add_asymmetric_capacity(b):
    """Limit TES charging by charge capacity.

    Units without a separately sized charge leg are limited by their
    heat output capacity.

    :param b: TES block with capacity and dispatch components
    :return: list of Contribution (none)
    """
    m = b.model()
    logger.info("TES Asymmetric Charge Module")

    @b.Constraint(m.storageUnits, m.hours)
    def charge_capacity_limit(b, unit, hour):
        if unit in m.asymmetricStorage:
            capacity = b.totalChargeCapacity[unit]
        else:
            capacity = b.totalPowerCapacity[unit]
        return charging_draw(b, unit, hour) <= capacity

    return []
