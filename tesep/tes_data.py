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
# Input data for the TES subsystem and the zonal supply it is attached to

from egret.data.model_data import ModelData
from pathlib import Path
import logging
import copy

import pandas as pd

from tesep.time_domain import representative_counts

logger = logging.getLogger(__name__)

# MW -> GW and $ -> M$ conversion used when parameter scaling is on
ModelScalingFactor = 1e3

# tes.csv column -> storage element key
TES_COLUMNS = {
    "Zone": "zone",
    "Existing_Cap_MW": "existing_power_capacity",
    "Existing_Cap_MWh": "existing_energy_capacity",
    "Existing_Charge_Cap_MW": "existing_charge_capacity",
    "Max_Cap_MW": "max_power_capacity",
    "Min_Cap_MW": "min_power_capacity",
    "Max_Cap_MWh": "max_energy_capacity",
    "Min_Cap_MWh": "min_energy_capacity",
    "Max_Charge_Cap_MW": "max_charge_capacity",
    "Min_Charge_Cap_MW": "min_charge_capacity",
    "New_Build": "new_build",
    "Can_Retire": "can_retire",
    "LDS": "long_duration",
    "Asymmetric": "asymmetric",
    "Min_Duration": "min_duration",
    "Max_Duration": "max_duration",
    "Eff_Up": "charge_efficiency",
    "Eff_Down": "discharge_efficiency",
    "Self_Disch": "self_discharge",
    "Min_Power": "min_power",
    "Inv_Cost_per_MWyr": "investment_cost_power",
    "Fixed_OM_Cost_per_MWyr": "fixed_om_cost_power",
    "Inv_Cost_per_MWhyr": "investment_cost_energy",
    "Fixed_OM_Cost_per_MWhyr": "fixed_om_cost_energy",
    "Inv_Cost_Charge_per_MWyr": "investment_cost_charge",
    "Fixed_OM_Cost_Charge_per_MWyr": "fixed_om_cost_charge",
    "Var_OM_Cost_per_MWh_In": "var_om_cost_in",
    "TES_MWh_per_MMBtu": "mwh_per_mmbtu",
    "Heat_Price_per_MMBtu": "heat_price",
    "Reg_Max": "reg_max",
    "Qualified_Supply": "qualified_supply",
}

REQUIRED_TES_COLUMNS = [
    "Resource",
    "Zone",
    "Existing_Cap_MW",
    "Existing_Cap_MWh",
    "Max_Duration",
    "Eff_Up",
    "Eff_Down",
    "TES_MWh_per_MMBtu",
    "Heat_Price_per_MMBtu",
]

REQUIRED_STORAGE_KEYS = [
    "existing_power_capacity",
    "existing_energy_capacity",
    "max_duration",
    "charge_efficiency",
    "discharge_efficiency",
    "mwh_per_mmbtu",
    "heat_price",
]

REQUIRED_DEMAND_COLUMNS =["Rep_Periods", "Timesteps_per_Rep_Period"]

REQUIRED_PERIOD_MAP_COLUMNS = ["Period_Index", "Rep_Period", "Rep_Period_Index"]

# Values filled in when a storage unit does not specify them.  A bound of -1
# (or 0) means "no bound".
STORAGE_DEFAULTS = {
    "existing_charge_capacity": 0.0,
    "max_power_capacity": -1,
    "min_power_capacity": -1,
    "max_energy_capacity": -1,
    "min_energy_capacity": -1,
    "max_charge_capacity": -1,
    "min_charge_capacity": -1,
    "new_build": False,
    "can_retire": False,
    "long_duration": False,
    "asymmetric": True,
    "min_duration": 0.0,
    "self_discharge": 0.0,
    "min_power": 0.0,
    "investment_cost_power": 0.0,
    "fixed_om_cost_power": 0.0,
    "investment_cost_energy": 0.0,
    "fixed_om_cost_energy": 0.0,
    "investment_cost_charge": 0.0,
    "fixed_om_cost_charge": 0.0,
    "var_om_cost_in": 0.0,
    "reg_max": 0.0,
    "qualified_supply": False,
}

ZONE_DEFAULTS = {
    "supply_capacity": 0.0,
    "qualified_supply": False,
}

FLAG_KEYS = [
    "new_build",
    "can_retire",
    "long_duration",
    "asymmetric",
    "qualified_supply",
]

# quantities divided by ModelScalingFactor under parameter scaling
SCALED_STORAGE_KEYS = [
    "existing_power_capacity",
    "existing_energy_capacity",
    "existing_charge_capacity",
    "max_power_capacity",
    "min_power_capacity",
    "max_energy_capacity",
    "min_energy_capacity",
    "max_charge_capacity",
    "min_charge_capacity",
    "investment_cost_power",
    "fixed_om_cost_power",
    "investment_cost_energy",
    "fixed_om_cost_energy",
    "investment_cost_charge",
    "fixed_om_cost_charge",
    "var_om_cost_in",
]


def _check_columns(df, required, filename):
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise ValueError(
            f"{filename} is missing required column(s): {', '.join(missing)}"
        )


def _policy_columns(df, prefix):
    return [col for col in df.columns if col.startswith(prefix)]


def _time_series(values):
    return {"data_type": "time_series", "values": [float(v) for v in values]}


class ThermalStorageData:
    """Standard data storage class for the TES expansion planning model."""

    def __init__(self):
        self.md = None
        self.scaled = False

    def load_csv(self, data_path, parameter_scale=False):
        """Load a case directory of csv files.

        :param data_path: folder holding tes.csv, demand.csv, supply.csv and
            supply_price.csv, plus the optional period_map.csv,
            capacity_reserve_margin.csv, energy_share_requirement.csv and
            operational_reserves.csv
        :param parameter_scale: divide MW/MWh quantities and $/MW(h) costs by
            ModelScalingFactor after loading
        """
        self.data_type = "csv"
        data_path = Path(data_path)
        logger.info("Loading TES case from %s", data_path)

        tes_df = pd.read_csv(data_path / "tes.csv")
        _check_columns(tes_df, REQUIRED_TES_COLUMNS, "tes.csv")

        demand_df = pd.read_csv(data_path / "demand.csv")
        _check_columns(demand_df, REQUIRED_DEMAND_COLUMNS, "demand.csv")

        supply_df = pd.read_csv(data_path / "supply.csv")
        _check_columns(supply_df, ["Zone", "Supply_Cap_MW"], "supply.csv")
        price_df = pd.read_csv(data_path / "supply_price.csv")

        period_map = None
        if (data_path / "period_map.csv").exists():
            map_df = pd.read_csv(data_path / "period_map.csv")
            _check_columns(map_df, REQUIRED_PERIOD_MAP_COLUMNS, "period_map.csv")
            period_map = [
                {
                    "period_index": int(row.Period_Index),
                    "rep_period": int(row.Rep_Period),
                    "rep_period_index": int(row.Rep_Period_Index),
                }
                for row in map_df.itertuples()
            ]

        rep_periods = int(demand_df["Rep_Periods"].iloc[0])
        hours_per_subperiod = int(demand_df["Timesteps_per_Rep_Period"].iloc[0])
        sub_weights = None
        if "Sub_Weights" in demand_df.columns:
            weights = demand_df["Sub_Weights"].dropna().tolist()[:rep_periods]
            sub_weights = {w + 1: float(weight) for w, weight in enumerate(weights)}

        demand_cols = _policy_columns(demand_df, "Demand_MW_z")
        zones = sorted(int(col[len("Demand_MW_z") :]) for col in demand_cols)
        for zone in supply_df["Zone"]:
            if int(zone) not in zones:
                zones.append(int(zone))
        zone_data = {zone: {} for zone in zones}
        for zone in zones:
            col = f"Demand_MW_z{zone}"
            if col in demand_df.columns:
                zone_data[zone]["demand"] = _time_series(demand_df[col])

        for row in supply_df.to_dict("records"):
            zone = int(row["Zone"])
            zone_data[zone]["supply_capacity"] = float(row["Supply_Cap_MW"])
            zone_data[zone]["qualified_supply"] = bool(row.get("Qualified_Supply", 0))
            zone_data[zone]["esr_eligible"] = {
                col: float(row[col]) for col in _policy_columns(supply_df, "ESR_")
            }
            zone_data[zone]["capres_derate"] = {
                col: float(row[col]) for col in _policy_columns(supply_df, "CapRes_")
            }
            col = f"Price_z{zone}"
            if col in price_df.columns:
                zone_data[zone]["supply_price"] = _time_series(price_df[col])

        system = {
            "rep_periods": rep_periods,
            "hours_per_subperiod": hours_per_subperiod,
            "num_hours": len(demand_df.index),
            "period_map": period_map,
            "sub_weights": sub_weights,
        }

        esr_path = data_path / "energy_share_requirement.csv"
        if esr_path.exists():
            esr_df = pd.read_csv(esr_path)
            _check_columns(esr_df, ["Zone"], esr_path.name)
            system["esr_constraints"] = _policy_columns(esr_df, "ESR_")
            for row in esr_df.to_dict("records"):
                zone_data[int(row["Zone"])]["esr_share"] = {
                    col: float(row[col]) for col in system["esr_constraints"]
                }

        capres_path = data_path / "capacity_reserve_margin.csv"
        if capres_path.exists():
            capres_df = pd.read_csv(capres_path)
            _check_columns(capres_df, ["Zone"], capres_path.name)
            system["capres_constraints"] = _policy_columns(capres_df, "CapRes_")
            for row in capres_df.to_dict("records"):
                zone_data[int(row["Zone"])]["capres_margin"] = {
                    col: float(row[col]) for col in system["capres_constraints"]
                }

        reserves_path = data_path / "operational_reserves.csv"
        if reserves_path.exists():
            reserves_df = pd.read_csv(reserves_path)
            _check_columns(reserves_df, ["Reg_Req_Percent_Demand"], reserves_path.name)
            system["regulation_requirement"] = float(
                reserves_df["Reg_Req_Percent_Demand"].iloc[0]
            )

        storage = {}
        for row in tes_df.to_dict("records"):
            unit = str(row["Resource"])
            storage[unit] = {
                key: row[col]
                for col, key in TES_COLUMNS.items()
                if col in row and not pd.isna(row[col])
            }
            storage[unit]["zone"] = int(row["Zone"])
            storage[unit]["esr"] = {
                col: int(row[col]) for col in _policy_columns(tes_df, "ESR_")
            }
            storage[unit]["capres_derate"] = {
                col: float(row[col]) for col in _policy_columns(tes_df, "CapRes_")
            }

        self.load_from_dict(storage, zone_data, system, parameter_scale=parameter_scale)

    def load_from_dict(self, storage, zones, system, parameter_scale=False):
        """Build the egret ModelData from python dictionaries.

        :param storage: {unit: {attribute: value}} using the element keys of
            TES_COLUMNS plus optional ``esr`` and ``capres_derate`` dicts
        :param zones: {zone: {attribute: value}}; ``demand`` and
            ``supply_price`` may be egret time series or plain lists
        :param system: scalars ``rep_periods``, ``hours_per_subperiod`` and
            optionally ``num_hours``, ``sub_weights``, ``period_map``,
            ``esr_constraints``, ``capres_constraints``,
            ``regulation_requirement``
        :param parameter_scale: scale MW/MWh quantities and costs to GW/GWh, M$
        """
        self.md = ModelData()
        self.md.data["elements"]["storage"] = copy.deepcopy(storage)
        self.md.data["elements"]["zone"] = copy.deepcopy(zones)
        self.md.data["system"].update(copy.deepcopy(system))

        self.load_default_data_settings()
        self.validate()
        self.compute_weights()
        if parameter_scale:
            self.scale_values()

    def load_default_data_settings(self):
        """Fills in necessary but unspecified data information."""
        system = self.md.data["system"]
        system.setdefault(
            "num_hours", system["rep_periods"] * system["hours_per_subperiod"]
        )
        system.setdefault("period_map", None)
        system.setdefault("sub_weights", None)
        system.setdefault("esr_constraints", [])
        system.setdefault("capres_constraints", [])
        system.setdefault("regulation_requirement", 0.0)

        num_hours = system["num_hours"]
        for zone, zone_data in self.md.data["elements"]["zone"].items():
            for key, default in ZONE_DEFAULTS.items():
                zone_data.setdefault(key, default)
            for key in ["demand", "supply_price"]:
                series = zone_data.get(key, [0.0] * num_hours)
                if isinstance(series, (list, tuple)):
                    series = _time_series(series)
                zone_data[key] = series
            zone_data.setdefault("esr_eligible", {})
            zone_data.setdefault("esr_share", {})
            zone_data.setdefault("capres_margin", {})
            zone_data.setdefault("capres_derate", {})
            zone_data["qualified_supply"] = bool(zone_data["qualified_supply"])

        for unit, unit_data in self.md.data["elements"]["storage"].items():
            for key, default in STORAGE_DEFAULTS.items():
                unit_data.setdefault(key, default)
            for key in FLAG_KEYS:
                unit_data[key] = bool(unit_data[key])
            unit_data.setdefault("esr", {})
            unit_data.setdefault("capres_derate", {})

    def validate(self):
        """Check the loaded data for structural problems.

        Bound consistency is not checked here; contradictory capacity bounds
        show up as an infeasible model.
        """
        system = self.md.data["system"]
        rep_periods = system["rep_periods"]
        hours_per_subperiod = system["hours_per_subperiod"]
        if system["num_hours"] != rep_periods * hours_per_subperiod:
            raise ValueError(
                f"Found {system['num_hours']} hours, expected Rep_Periods * Timesteps_per_Rep_Period = "
                f"{rep_periods * hours_per_subperiod}"
            )

        zones = self.md.data["elements"]["zone"]
        for zone, zone_data in zones.items():
            for key in ["demand", "supply_price"]:
                if len(zone_data[key]["values"]) != system["num_hours"]:
                    raise ValueError(
                        f"Zone {zone} {key} has {len(zone_data[key]['values'])} values, expected {system['num_hours']}"
                    )

        for unit, unit_data in self.md.data["elements"]["storage"].items():
            if unit_data["zone"] not in zones:
                raise ValueError(
                    f"TES unit {unit} is in unknown zone {unit_data['zone']}"
                )
            for key in REQUIRED_STORAGE_KEYS:
                if key not in unit_data:
                    raise ValueError(f"TES unit {unit} is missing '{key}'")
            if unit_data["max_duration"] <= 0 or unit_data["discharge_efficiency"] <= 0:
                raise ValueError(
                    f"TES unit {unit} needs a positive max_duration and discharge_efficiency"
                )

        period_map = system["period_map"]
        if period_map is not None:
            for row in period_map:
                if not 1 <= row["rep_period_index"] <= rep_periods:
                    raise ValueError(
                        f"Period {row['period_index']} maps to representative period "
                        f"{row['rep_period_index']}, but only {rep_periods} exist"
                    )

    def compute_weights(self):
        """Fill in per-period weights (hours represented) if not supplied.

        Without Sub_Weights each representative period stands in for the
        modeled periods mapped to it; without a period map every period
        stands for itself.
        """
        system = self.md.data["system"]
        if system["sub_weights"] is not None:
            system["sub_weights"] = {
                int(w): float(weight) for w, weight in system["sub_weights"].items()
            }
            return
        hours_per_subperiod = system["hours_per_subperiod"]
        if system["period_map"] is not None:
            counts = representative_counts(system["period_map"], system["rep_periods"])
            system["sub_weights"] = {
                w: float(count * hours_per_subperiod) for w, count in counts.items()
            }
        else:
            system["sub_weights"] = {
                w: float(hours_per_subperiod)
                for w in range(1, system["rep_periods"] + 1)
            }
        logger.debug("Computed sub_weights %s", system["sub_weights"])

    def scale_values(self):
        """Convert MW/MWh to GW/GWh and $ to M$."""
        for unit_data in self.md.data["elements"]["storage"].values():
            for key in SCALED_STORAGE_KEYS:
                # the -1 "no bound" sentinel stays as-is
                if unit_data[key] >= 0:
                    unit_data[key] = unit_data[key] / ModelScalingFactor
        for zone_data in self.md.data["elements"]["zone"].values():
            zone_data["supply_capacity"] = (
                zone_data["supply_capacity"] / ModelScalingFactor
            )
            for key in ["demand", "supply_price"]:
                zone_data[key]["values"] = [
                    v / ModelScalingFactor for v in zone_data[key]["values"]
                ]
        self.md.data["system"]["parameter_scale"] = True
        self.scaled = True
