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
# Solved TES values as tables, csv outputs, json and plots

from pyomo.environ import *
from tesep.tes_model import ThermalStoragePlanningModel
from tesep.tes_data import ModelScalingFactor
import logging

import json
from pathlib import Path

import matplotlib.pyplot as plt
from matplotlib.ticker import MaxNLocator
import pandas as pd

logger = logging.getLogger(__name__)


class ThermalStorageSolution:
    def __init__(self):
        self.results = None
        self.heat_prices = None

    def load_from_model(self, tes_model):
        """Read solved values from a ThermalStoragePlanningModel.

        :param tes_model: model object whose ``results`` holds the solver results
        """
        if type(tes_model) is not ThermalStoragePlanningModel:
            logger.warning(
                "Solutions must be loaded from ThermalStoragePlanningModel objects, not %s"
                % type(tes_model)
            )
            raise ValueError(
                f"Cannot load a ThermalStorageSolution from {type(tes_model).__name__}"
            )
        if tes_model.results is None:
            raise ValueError(
                "ThermalStorageSolution objects loaded from model must have a results component."
            )
        self.results = tes_model.results  # Highs results object
        self.model = tes_model.model
        self.data = tes_model.data
        self.config = tes_model.config
        # reported quantities are in MW/MWh
        self.scale = ModelScalingFactor if self.config["parameter_scale"] else 1

        self._extract_hourly()
        self._extract_capacity()
        self._extract_annual()
        if self.config["write_heat_prices"]:
            self._extract_heat_prices()

    def _hourly_frame(self, var):
        m = self.model
        return pd.DataFrame(
            {
                unit: [value(var[unit, hour]) * self.scale for hour in m.hours]
                for unit in m.storageUnits
            },
            index=pd.Index(list(m.hours), name="Hour"),
        )

    def _extract_hourly(self):
        b = self.model.thermalStorage
        self.state_of_charge = self._hourly_frame(b.stateOfCharge)
        self.charge = self._hourly_frame(b.charge)
        self.use = self._hourly_frame(b.use)

    def _extract_capacity(self):
        m = self.model
        b = m.thermalStorage
        rows = []
        for unit in m.storageUnits:
            row = {"Resource": unit, "Zone": m.storageZone[unit]}
            for leg, existing in [
                ("Power", m.existingPowerCap),
                ("Energy", m.existingEnergyCap),
                ("Charge", m.existingChargeCap),
            ]:
                total = b.component(f"total{leg}Capacity")
                if unit not in total:
                    continue
                built = b.component(f"built{leg}Capacity")
                retired = b.component(f"retired{leg}Capacity")
                row[f"Start{leg}Cap"] = existing[unit] * self.scale
                row[f"New{leg}Cap"] = (
                    value(built[unit]) * self.scale if unit in built else 0.0
                )
                row[f"Ret{leg}Cap"] = (
                    value(retired[unit]) * self.scale if unit in retired else 0.0
                )
                row[f"End{leg}Cap"] = value(total[unit]) * self.scale
            rows.append(row)
        self.capacity = pd.DataFrame(rows).set_index("Resource")

    def _extract_annual(self):
        m = self.model
        b = m.thermalStorage
        if len(m.longDurationStorage) == 0:
            self.annual_state_of_charge = None
            self.inventory_change = None
            return
        self.annual_state_of_charge = pd.DataFrame(
            {
                unit: [
                    value(b.annualStateOfCharge[unit, n]) * self.scale
                    for n in m.modeledPeriods
                ]
                for unit in m.longDurationStorage
            },
            index=pd.Index(list(m.modeledPeriods), name="Period"),
        )
        self.inventory_change = pd.DataFrame(
            {
                unit: [
                    value(b.periodInventoryChange[unit, w]) * self.scale
                    for w in m.repPeriods
                ]
                for unit in m.longDurationStorage
            },
            index=pd.Index(list(m.repPeriods), name="Rep_Period"),
        )

    def _extract_heat_prices(self):
        """Duals of the annual minimum output constraints in $/MMBtu."""
        m = self.model
        b = m.thermalStorage
        cons = [b.annual_minimum_output[unit] for unit in m.storageUnits]
        duals = self.results.solution_loader.get_duals(cons_to_load=cons)
        self.heat_prices = pd.DataFrame(
            {
                "Resource": list(m.storageUnits),
                "Heat_Price_per_MMBtu": [
                    duals[b.annual_minimum_output[unit]]
                    * self.scale
                    * m.mwhPerMMBtu[unit]
                    for unit in m.storageUnits
                ],
            }
        )

    def _write_hourly(self, df, filename):
        # one column per unit, zone on the first row
        out = df.copy()
        out.index = [f"t{hour}" for hour in df.index]
        zone_row = pd.DataFrame(
            [[self.model.storageZone[unit] for unit in df.columns]],
            index=["Zone"],
            columns=df.columns,
        )
        out = pd.concat([zone_row, out])
        out.to_csv(filename, index_label="Resource")

    def write_outputs(self, path="."):
        """Write TES results as csv files into ``path``."""
        path = Path(path)
        path.mkdir(parents=True, exist_ok=True)

        self._write_hourly(self.state_of_charge, path / "tes.csv")
        self._write_hourly(self.charge, path / "tes_charge.csv")
        self._write_hourly(self.use, path / "tes_use.csv")
        self.capacity.to_csv(path / "tes_capacity.csv")
        if self.annual_state_of_charge is not None:
            self.annual_state_of_charge.to_csv(path / "tes_annual_soc.csv")
            self.inventory_change.to_csv(path / "tes_inventory_change.csv")
        if self.heat_prices is not None:
            self.heat_prices.to_csv(path / "heat_prices.csv", index=False)
        logger.info("Wrote TES outputs to %s", path)

    def read_json(self, filepath):
        # read a json file and recover a solution primals
        json_filepath = Path(filepath)
        with open(json_filepath, "r") as fobj:
            json_read = json.loads(fobj.read())
        self.primals_tree = json_read["results"]["primals_tree"]

    def dump_json(self, filename="./tes_solution.json"):

        dump_filepath = Path(filename)
        with open(dump_filepath, "w") as fobj:
            json.dump(self._to_dict(), fobj, default=str)

    def _to_dict(self):

        results_dict = {
            "termination_condition": {
                "value": self.results.termination_condition.value,
                "name": self.results.termination_condition.name,
            },
            "best_feasible_objective": self.results.best_feasible_objective,
            "best_objective_bound": self.results.best_objective_bound,
        }

        # allocate the nested dictionary
        def nested_set(this_dict, key, val):
            if len(key) > 1:
                this_dict.setdefault(key[0], {})
                nested_set(this_dict[key[0]], key[1:], val)
            else:
                this_dict[key[0]] = val

        results_dict["primals_tree"] = {}
        for var in self.model.component_data_objects(Var, descend_into=True):
            tmp_dict = {
                "name": var.name,
                "value": var.value,
                "bounds": var.bounds,
            }
            # handle units, sometimes they dont have anything
            if var.get_units() is not None:
                tmp_dict["units"] = str(var.get_units())
            else:
                tmp_dict["units"] = None
            nested_set(results_dict["primals_tree"], var.name.split("."), tmp_dict)

        out_dict = {"data": self.model.md.data, "results": results_dict}

        self.primals_tree = results_dict["primals_tree"]

        return out_dict

    def plot_state_of_charge(self, save_dir=".", plot_name="tes"):
        """Hourly state of charge of every TES unit across representative periods."""
        m = self.model
        fig, ax = plt.subplots(figsize=(12, 4), tight_layout=True)
        for unit in self.state_of_charge.columns:
            ax.plot(self.state_of_charge.index, self.state_of_charge[unit], label=unit)
        # representative period boundaries
        for start in m.startHours:
            if start > 1:
                ax.axvline(start - 0.5, color="grey", linestyle=":", linewidth=0.8)
        ax.set_xlabel("Hour $[h]$")
        ax.set_ylabel("State of charge $[MWh]$")
        ax.xaxis.set_major_locator(MaxNLocator(integer=True))
        ax.legend()
        fig.savefig(Path(save_dir) / f"{plot_name}_state_of_charge.png")
        plt.close(fig)

    def plot_annual_state_of_charge(self, save_dir=".", plot_name="tes"):
        """Chronological start-of-period inventory of long-duration units."""
        if self.annual_state_of_charge is None:
            logger.warning("No long-duration TES units to plot.")
            return
        fig, ax = plt.subplots(figsize=(12, 4), tight_layout=True)
        for unit in self.annual_state_of_charge.columns:
            ax.step(
                self.annual_state_of_charge.index,
                self.annual_state_of_charge[unit],
                where="post",
                label=unit,
                marker="o",
            )
        ax.set_xlabel("Modeled period $[n]$")
        ax.set_ylabel("Start-of-period inventory $[MWh]$")
        ax.xaxis.set_major_locator(MaxNLocator(integer=True))
        ax.legend()
        fig.savefig(Path(save_dir) / f"{plot_name}_annual_state_of_charge.png")
        plt.close(fig)
