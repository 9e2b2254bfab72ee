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

# Hour bookkeeping for representative periods ("subperiods").  Hours are
# numbered 1..T and representative period w covers hours
# (w - 1) * hours_per_subperiod + 1 .. w * hours_per_subperiod.

import logging

logger = logging.getLogger(__name__)


def subperiod_start(hours_per_subperiod, rep_period):
    """First hour of representative period ``rep_period``."""
    return hours_per_subperiod * (rep_period - 1) + 1


def subperiod_end(hours_per_subperiod, rep_period):
    """Last hour of representative period ``rep_period``."""
    return hours_per_subperiod * rep_period


def start_hours(num_hours, hours_per_subperiod):
    return [t for t in range(1, num_hours + 1, hours_per_subperiod)]


def interior_hours(num_hours, hours_per_subperiod):
    return [
        t for t in range(1, num_hours + 1) if (t - 1) % hours_per_subperiod != 0
    ]


def hours_before(hours_per_subperiod, hour, offset=1):
    """Hour ``offset`` steps before ``hour``, wrapping within its own subperiod.

    :param hours_per_subperiod: length of each representative period
    :param hour: hour index (1-based)
    :param offset: number of hours to step back
    :return: 1-based hour index inside the same representative period
    """
    period = (hour - 1) // hours_per_subperiod
    return period * hours_per_subperiod + (hour - offset - 1) % hours_per_subperiod + 1


def representative_anchors(period_map):
    """Modeled periods that are themselves representative periods.

    :param period_map: list of dicts with ``period_index``, ``rep_period`` and
        ``rep_period_index`` keys, one per modeled period
    :return: list of modeled period indices n with rep_period[n] == n
    """
    return [
        row["period_index"]
        for row in period_map
        if row["rep_period"] == row["period_index"]
    ]


def representative_counts(period_map, num_rep_periods):
    """Number of modeled periods mapped to each representative period."""
    counts = {w: 0 for w in range(1, num_rep_periods + 1)}
    for row in period_map:
        counts[row["rep_period_index"]] += 1
    return counts


def hourly_weights(sub_weights, hours_per_subperiod):
    """Per-hour weights omega[t] from per-period weights in hours represented.

    ``sub_weights[w]`` is the number of hours of the year represented by
    representative period w, so every hour of w stands in for
    ``sub_weights[w] / hours_per_subperiod`` hours.
    """
    omega = {}
    for w, weight in sub_weights.items():
        for t in range(
            subperiod_start(hours_per_subperiod, w),
            subperiod_end(hours_per_subperiod, w) + 1,
        ):
            omega[t] = weight / hours_per_subperiod
    return omega
