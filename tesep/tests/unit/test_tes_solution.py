import pyomo.common.unittest as unittest

from pyomo.environ import value
from tesep.tes_model import ThermalStoragePlanningModel
from tesep.tes_data import ThermalStorageData
from tesep.tes_solution import ThermalStorageSolution
from pyomo.contrib.appsi.solvers.highs import Highs
from pyomo.contrib.appsi.base import TerminationCondition

from pathlib import Path
import tempfile

import pandas as pd

THREE_ZONE = Path(__file__).parents[2] / "data" / "three_zone"

highs_available = bool(Highs().available())


def solved_three_zone(config=None):
    dataObject = ThermalStorageData()
    dataObject.load_csv(THREE_ZONE)
    modObject = ThermalStoragePlanningModel(data=dataObject, config=config)
    modObject.create_model()
    opt = Highs()
    modObject.results = opt.solve(modObject.model)
    return modObject


def solved_minimum_output_case():
    # output is never worth its charging cost, so only the floor keeps it running
    unit = {
        "zone": 1,
        "existing_power_capacity": 10.0,
        "existing_energy_capacity": 40.0,
        "asymmetric": False,
        "min_duration": 4.0,
        "max_duration": 4.0,
        "charge_efficiency": 0.9,
        "discharge_efficiency": 0.9,
        "min_power": 0.3,
        "mwh_per_mmbtu": 0.293,
        "heat_price": 1.0,
    }
    hours = 6
    zones = {
        1: {
            "demand": [5.0] * hours,
            "supply_capacity": 100.0,
            "supply_price": [100.0] * hours,
        }
    }
    dataObject = ThermalStorageData()
    dataObject.load_from_dict(
        {"tes": unit}, zones, {"rep_periods": 1, "hours_per_subperiod": hours}
    )
    modObject = ThermalStoragePlanningModel(
        data=dataObject, config={"write_heat_prices": True}
    )
    modObject.create_model()
    opt = Highs()
    modObject.results = opt.solve(modObject.model)
    return modObject


class TestThermalStorageSolution(unittest.TestCase):
    def test_load_rejects_other_objects(self):
        sol_object = ThermalStorageSolution()
        with self.assertRaises(ValueError):
            sol_object.load_from_model(object())

    def test_load_requires_results(self):
        dataObject = ThermalStorageData()
        dataObject.load_csv(THREE_ZONE)
        modObject = ThermalStoragePlanningModel(data=dataObject)
        modObject.create_model()
        sol_object = ThermalStorageSolution()
        with self.assertRaisesRegex(ValueError, "results"):
            sol_object.load_from_model(modObject)

    @unittest.skipUnless(highs_available, "HiGHS is not available")
    def test_write_outputs(self):
        modObject = solved_three_zone(config={"write_heat_prices": True})
        self.assertEqual(
            modObject.results.termination_condition, TerminationCondition.optimal
        )
        sol_object = ThermalStorageSolution()
        sol_object.load_from_model(modObject)
        self.assertEqual(sol_object.state_of_charge.shape, (48, 2))
        self.assertEqual(sorted(sol_object.capacity.index), ["tes_day", "tes_lds"])
        self.assertAlmostEqual(
            sol_object.capacity.loc["tes_day", "StartPowerCap"], 10.0
        )
        self.assertEqual(sol_object.annual_state_of_charge.shape, (4, 1))

        with tempfile.TemporaryDirectory() as tmp:
            out = Path(tmp) / "results"
            sol_object.write_outputs(out)
            for filename in [
                "tes.csv",
                "tes_charge.csv",
                "tes_use.csv",
                "tes_capacity.csv",
                "tes_annual_soc.csv",
                "tes_inventory_change.csv",
                "heat_prices.csv",
            ]:
                self.assertTrue((out / filename).exists(), filename)

            soc = pd.read_csv(out / "tes.csv", index_col="Resource")
            self.assertEqual(list(soc.index[:2]), ["Zone", "t1"])
            self.assertEqual(len(soc), 49)
            self.assertEqual(soc.loc["Zone", "tes_day"], 2)

            prices = pd.read_csv(out / "heat_prices.csv")
            self.assertEqual(sorted(prices["Resource"]), ["tes_day", "tes_lds"])
            self.assertEqual(list(prices.columns), ["Resource", "Heat_Price_per_MMBtu"])

    @unittest.skipUnless(highs_available, "HiGHS is not available")
    def test_heat_price_matches_binding_floor(self):
        modObject = solved_minimum_output_case()
        self.assertEqual(
            modObject.results.termination_condition, TerminationCondition.optimal
        )
        m = modObject.model
        b = m.thermalStorage
        con = b.annual_minimum_output["tes"]
        # the floor is tight at the optimum
        self.assertAlmostEqual(value(con.body), value(con.lower), places=5)
        duals = modObject.results.solution_loader.get_duals(cons_to_load=[con])
        self.assertGreater(abs(duals[con]), 1e-6)

        sol_object = ThermalStorageSolution()
        sol_object.load_from_model(modObject)
        prices = sol_object.heat_prices.set_index("Resource")
        self.assertAlmostEqual(
            prices.loc["tes", "Heat_Price_per_MMBtu"], duals[con] * 1.0 * 0.293
        )
        self.assertNotAlmostEqual(prices.loc["tes", "Heat_Price_per_MMBtu"], 0.0)

    @unittest.skipUnless(highs_available, "HiGHS is not available")
    def test_heat_prices_not_written_by_default(self):
        sol_object = ThermalStorageSolution()
        sol_object.load_from_model(solved_three_zone())
        self.assertIsNone(sol_object.heat_prices)
        with tempfile.TemporaryDirectory() as tmp:
            sol_object.write_outputs(tmp)
            self.assertFalse((Path(tmp) / "heat_prices.csv").exists())

    @unittest.skipUnless(highs_available, "HiGHS is not available")
    def test_json_round_trip(self):
        sol_object = ThermalStorageSolution()
        sol_object.load_from_model(solved_three_zone())
        with tempfile.TemporaryDirectory() as tmp:
            filename = Path(tmp) / "tes_solution.json"
            sol_object.dump_json(filename)
            dumped = sol_object.primals_tree
            reloaded = ThermalStorageSolution()
            reloaded.read_json(filename)
        soc = reloaded.primals_tree["thermalStorage"]["stateOfCharge[tes_day,1]"]
        self.assertEqual(soc["name"], "thermalStorage.stateOfCharge[tes_day,1]")
        self.assertAlmostEqual(
            soc["value"],
            dumped["thermalStorage"]["stateOfCharge[tes_day,1]"]["value"],
        )
        self.assertIsNotNone(soc["units"])

    @unittest.skipUnless(highs_available, "HiGHS is not available")
    def test_plots(self):
        sol_object = ThermalStorageSolution()
        sol_object.load_from_model(solved_three_zone())
        with tempfile.TemporaryDirectory() as tmp:
            sol_object.plot_state_of_charge(save_dir=tmp, plot_name="case")
            sol_object.plot_annual_state_of_charge(save_dir=tmp, plot_name="case")
            self.assertTrue((Path(tmp) / "case_state_of_charge.png").exists())
            self.assertTrue((Path(tmp) / "case_annual_state_of_charge.png").exists())


if __name__ == "__main__":
    unittest.main()
