import pyomo.common.unittest as unittest

from pyomo.environ import value
from pyomo.core.expr.visitor import identify_variables
from pyomo.contrib.appsi.solvers.highs import Highs
from pyomo.contrib.appsi.base import TerminationCondition
from tesep.tes_model import ThermalStoragePlanningModel
from tesep.tes_data import ThermalStorageData

from pathlib import Path

THREE_ZONE = Path(__file__).parents[2] / "data" / "three_zone"

highs_available = bool(Highs().available())


def looped_data(num_periods=3, hours=4, self_discharge=0.0):
    """One representative period standing in for ``num_periods`` modeled periods."""
    unit = {
        "zone": 1,
        "existing_power_capacity": 0.0,
        "existing_energy_capacity": 0.0,
        "new_build": True,
        "long_duration": True,
        "max_power_capacity": 10.0,
        "max_energy_capacity": 100.0,
        "max_charge_capacity": 30.0,
        "min_duration": 1.0,
        "max_duration": 10.0,
        "charge_efficiency": 0.95,
        "discharge_efficiency": 0.95,
        "self_discharge": self_discharge,
        "mwh_per_mmbtu": 0.293,
        "heat_price": 40.0,
    }
    zones = {
        1: {
            "demand": [5.0] * hours,
            "supply_capacity": 100.0,
            "supply_price": [1.0, 1.0, 20.0, 20.0][:hours],
        }
    }
    period_map = [
        {"period_index": n, "rep_period": 1, "rep_period_index": 1}
        for n in range(1, num_periods + 1)
    ]
    data = ThermalStorageData()
    data.load_from_dict(
        {"lds": unit},
        zones,
        {"rep_periods": 1, "hours_per_subperiod": hours, "period_map": period_map},
    )
    return data


def build(data, config=None):
    mod_object = ThermalStoragePlanningModel(data=data, config=config)
    mod_object.create_model()
    return mod_object


def solve(mod_object):
    opt = Highs()
    mod_object.results = opt.solve(mod_object.model)
    return mod_object.results


class TestLongDurationLedger(unittest.TestCase):
    def test_ledger_structure(self):
        m = build(looped_data()).model
        b = m.thermalStorage
        self.assertEqual(list(m.longDurationStorage), ["lds"])
        self.assertEqual(len(m.shortDurationStorage), 0)
        # first-hour balance lives on the ledger, not the cyclic recursion
        self.assertEqual(len(b.state_of_charge_start), 0)
        self.assertIn(("lds", 1), b.long_duration_start)
        self.assertEqual(len(b.long_duration_chaining), 3)
        self.assertEqual(list(m.anchorPeriods), [1])
        self.assertEqual(m.modeledPeriods.nextw(3), 1)

    def test_no_period_map_falls_back_to_cycling(self):
        data = looped_data()
        data.md.data["system"]["period_map"] = None
        mod_object = ThermalStoragePlanningModel(data=data)
        with self.assertLogs("tesep.tes_model", level="WARNING") as logs:
            mod_object.create_model()
        self.assertIn("period map", logs.output[0])
        m = mod_object.model
        self.assertEqual(len(m.longDurationStorage), 0)
        self.assertIn((1, "lds"), m.thermalStorage.state_of_charge_start)
        self.assertFalse(hasattr(m.thermalStorage, "annualStateOfCharge"))

    def test_periods_share_representative_change(self):
        data = ThermalStorageData()
        data.load_csv(THREE_ZONE)
        m = build(data).model
        b = m.thermalStorage
        self.assertEqual(list(m.longDurationStorage), ["tes_lds"])
        self.assertEqual(sorted(m.anchorPeriods), [1, 2])
        self.assertEqual(len(b.annualStateOfCharge), 4)

        def _names(con):
            return {v.name for v in identify_variables(con.body)}

        shared = b.periodInventoryChange["tes_lds", 1].name
        self.assertIn(shared, _names(b.long_duration_chaining["tes_lds", 1]))
        self.assertIn(shared, _names(b.long_duration_chaining["tes_lds", 3]))
        self.assertNotIn(shared, _names(b.long_duration_chaining["tes_lds", 2]))

    @unittest.skipUnless(highs_available, "HiGHS is not available")
    def test_wraparound_closes_the_year(self):
        mod_object = build(looped_data(num_periods=5))
        results = solve(mod_object)
        self.assertEqual(results.termination_condition, TerminationCondition.optimal)
        m = mod_object.model
        b = m.thermalStorage
        total = sum(
            value(b.periodInventoryChange["lds", m.periodMap[n]])
            for n in m.modeledPeriods
        )
        self.assertAlmostEqual(total, 0.0, places=6)

    @unittest.skipUnless(highs_available, "HiGHS is not available")
    def test_three_zone_annual_state_of_charge(self):
        data = ThermalStorageData()
        data.load_csv(THREE_ZONE)
        mod_object = build(data)
        results = solve(mod_object)
        self.assertEqual(results.termination_condition, TerminationCondition.optimal)
        m = mod_object.model
        b = m.thermalStorage
        L = m.hoursPerSubperiod
        capacity = value(b.totalEnergyCapacity["tes_lds"])
        for n in m.modeledPeriods:
            level = value(b.annualStateOfCharge["tes_lds", n])
            self.assertGreaterEqual(level, -1e-6)
            self.assertLessEqual(level, capacity + 1e-6)
        for n in m.anchorPeriods:
            rep = m.periodMap[n]
            self.assertAlmostEqual(
                value(b.annualStateOfCharge["tes_lds", n]),
                value(b.stateOfCharge["tes_lds", L * rep])
                - value(b.periodInventoryChange["tes_lds", rep]),
                places=5,
            )
        # chronological chaining holds across the wrap
        for n in m.modeledPeriods:
            following = m.modeledPeriods.nextw(n)
            self.assertAlmostEqual(
                value(b.annualStateOfCharge["tes_lds", following]),
                value(b.annualStateOfCharge["tes_lds", n])
                + value(b.periodInventoryChange["tes_lds", m.periodMap[n]]),
                places=5,
            )


    def test_reserve_ledger_structure(self):
        data = ThermalStorageData()
        data.load_csv(THREE_ZONE)
        m = build(data, config={"capacity_reserve_margin": 1}).model
        b = m.thermalStorage
        self.assertEqual(list(b.reserveLongDurationStorage), ["tes_lds"])
        self.assertIn(("tes_lds", 1), b.reserve_long_duration_start)
        self.assertIn(("tes_lds", 2), b.reserve_long_duration_start)
        for n in m.modeledPeriods:
            self.assertIn(("tes_lds", n), b.reserve_long_duration_chaining)
            self.assertIn(("tes_lds", n), b.reserve_within_annual_inventory)
        self.assertEqual(len(b.reserve_long_duration_chaining), 4)
        for n in [1, 2]:
            self.assertIn(("tes_lds", n), b.reserve_long_duration_anchor)
        # short-duration reserve energy keeps the cyclic start
        self.assertNotIn(("tes_day", 1), b.reserve_long_duration_chaining)
        self.assertIn((1, "tes_day"), b.reserve_state_of_charge_start)
        self.assertNotIn((1, "tes_lds"), b.reserve_state_of_charge_start)

    @unittest.skipUnless(highs_available, "HiGHS is not available")
    def test_three_zone_reserve_annual_state_of_charge(self):
        data = ThermalStorageData()
        data.load_csv(THREE_ZONE)
        mod_object = build(data, config={"capacity_reserve_margin": 1})
        results = solve(mod_object)
        self.assertEqual(results.termination_condition, TerminationCondition.optimal)
        m = mod_object.model
        b = m.thermalStorage
        for n in m.modeledPeriods:
            self.assertGreaterEqual(
                value(b.annualStateOfCharge["tes_lds", n]) + 1e-6,
                value(b.reserveAnnualStateOfCharge["tes_lds", n]),
            )
            following = m.modeledPeriods.nextw(n)
            self.assertAlmostEqual(
                value(b.reserveAnnualStateOfCharge["tes_lds", following]),
                value(b.reserveAnnualStateOfCharge["tes_lds", n])
                + value(b.reservePeriodInventoryChange["tes_lds", m.periodMap[n]]),
                places=5,
            )


if __name__ == "__main__":
    unittest.main()
