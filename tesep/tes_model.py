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

# Thermal Energy Storage Expansion Planning
# Builds the TES accounting subsystem (capacity, intra-period dispatch,
# long-duration ledger, charge capacity, costs) on top of a minimal zonal
# supply model.

from pyomo.environ import *
from pyomo.environ import units as u

from pyomo.common.timing import TicTocTimer
from pyomo.repn.linear import LinearRepnVisitor
import json
import logging

from tesep.config_options import (
    _get_model_config,
    _add_policy_configs,
    _add_storage_configs,
)
from tesep.contributions import (
    ContributionRegistry,
    assemble_objective,
    assemble_balances,
)
from tesep.time_domain import (
    start_hours,
    interior_hours,
    representative_anchors,
    hourly_weights,
)
from tesep.host_system import add_system_supply
from tesep.tes_capacity import add_capacity_ledger
from tesep.tes_dispatch import add_dispatch_balance
from tesep.tes_long_duration import add_long_duration_ledger
from tesep.tes_asymmetric import add_asymmetric_capacity
from tesep.tes_costs import add_cost_contributions

logger = logging.getLogger(__name__)

# Define what a USD is for pyomo units purposes
u.load_definitions_from_strings(["USD = [currency]"])


def carry_capacity_forward(model, data):
    """Copy solved capacity totals into ``data`` as the next stage's existing capacity.

    :param model: solved Pyomo model built by ThermalStoragePlanningModel
    :param data: ThermalStorageData (or egret ModelData) to update in place
    """
    md = data.md if hasattr(data, "md") else data
    b = model.thermalStorage
    for unit in model.storageUnits:
        unit_data = md.data["elements"]["storage"][unit]
        unit_data["existing_power_capacity"] = value(b.totalPowerCapacity[unit])
        unit_data["existing_energy_capacity"] = value(b.totalEnergyCapacity[unit])
        if unit in model.asymmetricStorage:
            unit_data["existing_charge_capacity"] = value(b.totalChargeCapacity[unit])
    logger.info("Carried TES capacity forward for %d units", len(model.storageUnits))


# This is only used for reporting potentially bad (i.e., large magnitude) coefficients
# and thus only when that argument is passed
class VisitorConfig(object):
    def __init__(self):
        self.subexpr = {}
        self.var_map = {}
        self.var_order = {}

    def __iter__(self):
        return iter((self.subexpr, self.var_map, self.var_order))


class ThermalStoragePlanningModel:
    """Thermal energy storage capacity expansion and dispatch model."""

    def __init__(self, config=None, data=None):
        """Initialize TES planning model object.

        :param config: dict (or ConfigBlock) of option values, see config_options
        :param data: ThermalStorageData or egret ModelData holding the case
        """

        self.data = data
        self.config = _get_model_config()
        self.timer = TicTocTimer()
        self.results = None

        _add_policy_configs(self.config)
        _add_storage_configs(self.config)
        if config is not None:
            self.config.set_value(config)

    def create_model(self):
        """Create concrete Pyomo model object associated with the ThermalStoragePlanningModel"""

        self.timer.tic("Creating TES Model")
        if self.data is None:
            raise ValueError("ThermalStoragePlanningModel needs data to build a model.")
        m = ConcreteModel()
        m.config = self.config
        m.md = self.data.md if hasattr(self.data, "md") else self.data
        if (
            m.md.data["system"].get("parameter_scale")
            and not m.config["parameter_scale"]
        ):
            logger.warning("Data is scaled; turning on parameter_scale.")
            m.config["parameter_scale"] = True

        model_set_declaration(m)
        model_data_references(m)

        registry = ContributionRegistry()
        registry.register(add_system_supply(m))

        m.thermalStorage = Block()
        b = m.thermalStorage
        registry.register(add_capacity_ledger(b))
        registry.register(add_dispatch_balance(b))
        if len(m.longDurationStorage) > 0:
            registry.register(add_long_duration_ledger(b))
        registry.register(add_asymmetric_capacity(b))
        registry.register(add_cost_contributions(b))

        assemble_objective(m, registry)
        assemble_balances(m, registry)
        m.contributions = registry

        self.model = m
        self.timer.toc("Created TES Model")

    ## TODO: this should handle string or i/o object for outfile
    def report_model(self, outfile="pretty_model_output.txt"):
        """Pretty prints Pyomo model to outfile.

        :outfile: (str, optional) _description_. Defaults to "pretty_model_output.txt".
        """
        with open(outfile, "w") as outf:
            self.model.pprint(ostream=outf)

    def report_large_coefficients(self, outfile, magnitude_cutoff=1e5):
        """Dump very large magnitude (>= 1e5) coefficients to a json file.

        :outfile: name of the json file to write
        :magnitude_cutoff: magnitude above which to report coefficients
        """
        var_coef_dict = {}
        for e in self.model.component_data_objects(Constraint, active=True):
            cfg = VisitorConfig()
            repn = LinearRepnVisitor(*cfg).walk_expression(e.body)
            repn_dict = repn.linear
            varname_dict = {cfg.var_map[v].name: repn_dict[v] for v in repn_dict.keys()}
            var_coef_dict = dict(var_coef_dict | varname_dict)

        really_bad_var_coef_dict = {
            key: value
            for (key, value) in var_coef_dict.items()
            if abs(value) >= magnitude_cutoff
        }
        really_bad_var_coef_list = sorted(
            really_bad_var_coef_dict.items(), key=lambda x: x[1]
        )
        with open(outfile, "w") as fil:
            json.dump(really_bad_var_coef_list, fil)


####################################
## Model Building Functions Below ##
####################################


def storage_capabilities(unit_data, config):
    """Capability tags of one TES unit, fixed at build time.

    :param unit_data: storage element dict from the ModelData
    :param config: model ConfigBlock
    :return: frozenset of tag strings
    """
    tags = set()
    if unit_data["new_build"]:
        tags.update(["new_power", "new_energy"])
    if unit_data["can_retire"]:
        tags.update(["retire_power", "retire_energy"])
    if unit_data["asymmetric"]:
        tags.add("asymmetric")
        if unit_data["new_build"]:
            tags.add("new_charge")
        if unit_data["can_retire"]:
            tags.add("retire_charge")
    if unit_data["long_duration"]:
        tags.add("long_duration")
    if config["operational_reserves"] and unit_data["reg_max"] > 0:
        tags.add("regulation")
    if config["capacity_reserve_margin"] > 0:
        tags.add("reserve_margin")
    if unit_data["qualified_supply"]:
        tags.add("qualified")
    return frozenset(tags)


def model_set_declaration(m):
    """
    Creates Pyomo Sets necessary (convenient) for building the TES model.

    :m: Pyomo model object
    """
    system = m.md.data["system"]
    storage = m.md.data["elements"]["storage"]

    m.hoursPerSubperiod = system["hours_per_subperiod"]
    m.numHours = system["num_hours"]

    m.zones = Set(
        initialize=m.md.data["elements"]["zone"].keys(), doc="Zones of the host system"
    )
    m.hours = RangeSet(m.numHours, doc="Hours of all representative periods")
    m.repPeriods = RangeSet(system["rep_periods"], doc="Representative periods")
    m.startHours = Set(
        within=m.hours,
        initialize=start_hours(m.numHours, m.hoursPerSubperiod),
        doc="First hour of each representative period",
    )
    m.interiorHours = Set(
        within=m.hours,
        initialize=interior_hours(m.numHours, m.hoursPerSubperiod),
        doc="All other hours",
    )

    m.storageUnits = Set(initialize=storage.keys(), doc="TES units")
    m.capabilities = {
        unit: storage_capabilities(storage[unit], m.config) for unit in m.storageUnits
    }

    def _tagged(tag):
        return [unit for unit in m.storageUnits if tag in m.capabilities[unit]]

    m.newPowerStorage = Set(within=m.storageUnits, initialize=_tagged("new_power"))
    m.retirePowerStorage = Set(
        within=m.storageUnits, initialize=_tagged("retire_power")
    )
    m.newEnergyStorage = Set(within=m.storageUnits, initialize=_tagged("new_energy"))
    m.retireEnergyStorage = Set(
        within=m.storageUnits, initialize=_tagged("retire_energy")
    )
    m.asymmetricStorage = Set(
        within=m.storageUnits,
        initialize=_tagged("asymmetric"),
        doc="TES units with a separately tracked charge capacity",
    )
    m.newChargeStorage = Set(
        within=m.asymmetricStorage, initialize=_tagged("new_charge")
    )
    m.retireChargeStorage = Set(
        within=m.asymmetricStorage, initialize=_tagged("retire_charge")
    )
    m.regulationStorage = Set(within=m.storageUnits, initialize=_tagged("regulation"))
    m.qualifiedStorage = Set(within=m.storageUnits, initialize=_tagged("qualified"))
    m.reserveMarginStorage = Set(
        within=m.storageUnits,
        initialize=_tagged("reserve_margin"),
        doc="TES units holding energy in reserve for the capacity reserve margin",
    )

    period_map = system["period_map"]
    long_duration = _tagged("long_duration")
    if long_duration and period_map is None:
        logger.warning(
            "TES units %s are flagged long-duration but no period map was given; "
            "they will cycle within each representative period.",
            long_duration,
        )
        long_duration = []
    m.longDurationStorage = Set(
        within=m.storageUnits,
        initialize=long_duration,
        doc="TES units tracked by the inter-period ledger",
    )
    m.shortDurationStorage = Set(
        within=m.storageUnits,
        initialize=[unit for unit in m.storageUnits if unit not in long_duration],
        doc="TES units whose representative periods are cyclic",
    )

    if period_map is None:
        period_map = []
    m.modeledPeriods = Set(
        initialize=[row["period_index"] for row in period_map],
        ordered=True,
        doc="Chronological periods of the year",
    )
    m.anchorPeriods = Set(
        within=m.modeledPeriods,
        initialize=representative_anchors(period_map),
        doc="Modeled periods that are themselves representative periods",
    )
    m.periodMap = {row["period_index"]: row["rep_period_index"] for row in period_map}

    m.tesZones = Set(
        within=m.zones,
        initialize=sorted({storage[unit]["zone"] for unit in m.storageUnits}),
        doc="Zones hosting at least one TES unit",
    )

    if m.config["capacity_reserve_margin"] > 0:
        capres = system["capres_constraints"]
    else:
        capres = []
    m.capResConstraints = Set(initialize=capres, doc="Capacity reserve constraints")

    if m.config["energy_share_requirement"] >= 1:
        esr = system["esr_constraints"]
    else:
        esr = []
    m.esrConstraints = Set(initialize=esr, doc="Energy share requirements")

    logger.debug(
        "Declared %d TES units (%d long-duration, %d asymmetric) over %d hours",
        len(m.storageUnits),
        len(m.longDurationStorage),
        len(m.asymmetricStorage),
        len(m.hours),
    )


def model_data_references(m):
    """Creates and labels data for TES model; ties input data
    to model directly.
    :param m: Pyomo model object
    """
    system = m.md.data["system"]
    storage = m.md.data["elements"]["storage"]
    zones = m.md.data["elements"]["zone"]

    # Hours of the year represented by each hour of a representative period
    m.omega = hourly_weights(system["sub_weights"], m.hoursPerSubperiod)

    m.demand = Param(
        m.zones,
        m.hours,
        initialize={
            (zone, hour): zones[zone]["demand"]["values"][hour - 1]
            for zone in m.zones
            for hour in m.hours
        },
        default=0,
        units=u.MW,
    )

    # Capacity reserve requirement multiplier (1 + margin); zones without a
    # margin do not count towards the requirement
    m.capResMargin = Param(
        m.zones,
        m.capResConstraints,
        initialize={
            (zone, res): 1 + zones[zone]["capres_margin"].get(res, 0)
            for zone in m.zones
            for res in m.capResConstraints
            if zones[zone]["capres_margin"].get(res, 0) != 0
        },
        default=0,
    )
    m.regulationRequirement = Param(
        initialize=system["regulation_requirement"], within=NonNegativeReals
    )

    """ Host supply properties read-in from data """
    m.supplyCapacity = {zone: zones[zone]["supply_capacity"] for zone in m.zones}
    m.supplyPrice = {
        (zone, hour): zones[zone]["supply_price"]["values"][hour - 1]
        for zone in m.zones
        for hour in m.hours
    }
    m.qualifiedZones = [zone for zone in m.zones if zones[zone]["qualified_supply"]]
    m.zoneEsrEligible = {
        (zone, esr): zones[zone]["esr_eligible"].get(esr, 0)
        for zone in m.zones
        for esr in m.esrConstraints
    }
    m.zoneEsrShare = {
        (zone, esr): zones[zone]["esr_share"].get(esr, 0)
        for zone in m.zones
        for esr in m.esrConstraints
    }
    m.zoneCapResDerate = {
        (zone, res): zones[zone]["capres_derate"].get(res, 0)
        for zone in m.zones
        for res in m.capResConstraints
    }

    """ TES properties read-in from data """

    def _attribute(key):
        return {unit: storage[unit][key] for unit in m.storageUnits}

    m.storageZone = _attribute("zone")
    m.existingPowerCap = _attribute("existing_power_capacity")
    m.existingEnergyCap = _attribute("existing_energy_capacity")
    m.existingChargeCap = _attribute("existing_charge_capacity")
    # bounds of 0 or -1 are disabled
    m.maxPowerCap = _attribute("max_power_capacity")
    m.minPowerCap = _attribute("min_power_capacity")
    m.maxEnergyCap = _attribute("max_energy_capacity")
    m.minEnergyCap = _attribute("min_energy_capacity")
    m.maxChargeCap = _attribute("max_charge_capacity")
    m.minChargeCap = _attribute("min_charge_capacity")
    m.minDuration = _attribute("min_duration")
    m.maxDuration = _attribute("max_duration")

    m.chargeEfficiency = _attribute("charge_efficiency")
    m.dischargeEfficiency = _attribute("discharge_efficiency")
    m.selfDischarge = _attribute("self_discharge")  # fraction lost per hour
    m.minOutputFraction = _attribute("min_power")  # annual capacity factor floor

    m.powerInvestmentCost = _attribute("investment_cost_power")
    m.powerFixedCost = _attribute("fixed_om_cost_power")
    m.energyInvestmentCost = _attribute("investment_cost_energy")
    m.energyFixedCost = _attribute("fixed_om_cost_energy")
    m.chargeInvestmentCost = _attribute("investment_cost_charge")
    m.chargeFixedCost = _attribute("fixed_om_cost_charge")
    m.chargingCost = _attribute("var_om_cost_in")

    # heat output valued as avoided fuel purchase
    m.mwhPerMMBtu = _attribute("mwh_per_mmbtu")
    m.heatPrice = _attribute("heat_price")

    m.regulationMax = _attribute("reg_max")
    m.esrTag = {
        (unit, esr): storage[unit]["esr"].get(esr, 0)
        for unit in m.storageUnits
        for esr in m.esrConstraints
    }
    m.capResDerate = {
        (unit, res): storage[unit]["capres_derate"].get(res, 0)
        for unit in m.storageUnits
        for res in m.capResConstraints
    }
