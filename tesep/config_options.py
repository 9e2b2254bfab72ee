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

from pyomo.common.config import (
    ConfigBlock,
    ConfigValue,
    NonNegativeFloat,
    NonNegativeInt,
    PositiveFloat,
    Bool,
)


def _get_model_config():
    CONFIG = ConfigBlock("TESModelConfig")

    CONFIG.declare(
        "multi_stage",
        ConfigValue(
            default=False,
            domain=Bool,
            description="Build one stage of a sequential multi-stage planning run; existing capacity becomes a pinned variable.",
        ),
    )

    CONFIG.declare(
        "opex_multiplier",
        ConfigValue(
            default=1.0,
            domain=PositiveFloat,
            description="Inter-stage annuity factor applied to the assembled objective in multi-stage mode.",
        ),
    )

    CONFIG.declare(
        "parameter_scale",
        ConfigValue(
            default=False,
            domain=Bool,
            description="Inputs are scaled to GW/GWh and millions of dollars for numerical conditioning.",
        ),
    )

    CONFIG.declare(
        "write_heat_prices",
        ConfigValue(
            default=False,
            domain=Bool,
            description="Collect duals of the annual minimum-output constraints (implicit heat prices).",
        ),
    )
    return CONFIG


def _add_policy_configs(CONFIG):

    CONFIG.declare(
        "operational_reserves",
        ConfigValue(
            default=False,
            domain=Bool,
            description="Model regulation reserves provided by modulating TES charging.",
        ),
    )

    CONFIG.declare(
        "capacity_reserve_margin",
        ConfigValue(
            default=0,
            domain=NonNegativeInt,
            description="Capacity reserve margin policy; any nonzero value enables the reserve shadow ledger.",
        ),
    )

    CONFIG.declare(
        "energy_share_requirement",
        ConfigValue(
            default=0,
            domain=NonNegativeInt,
            description="Energy share requirement policy; values >= 1 enable the ESR balances.",
        ),
    )

    CONFIG.declare(
        "hourly_matching",
        ConfigValue(
            default=False,
            domain=Bool,
            description="Require qualified supply in each TES zone to cover TES charging hour by hour.",
        ),
    )

    CONFIG.declare(
        "hourly_matching_long_duration",
        ConfigValue(
            default=True,
            domain=Bool,
            description="Include charging of long-duration TES units in the hourly matching requirement.",
        ),
    )


def _add_storage_configs(CONFIG):

    CONFIG.declare(
        "charge_capacity_ratio",
        ConfigValue(
            default=3.0,
            domain=PositiveFloat,
            description="Fixed ratio of TES charge capacity to discharge (heat output) capacity.",
        ),
    )

    CONFIG.declare(
        "virtual_charge_discharge_cost",
        ConfigValue(
            default=1.0,
            domain=NonNegativeFloat,
            description="Cost ($/MWh) of virtual charging and discharging used to hold energy in reserve.",
        ),
    )
