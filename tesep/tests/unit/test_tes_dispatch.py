import pyomo.common.unittest as unittest

from pyomo.environ import value
from pyomo.repn import generate_standard_repn
from pyomo.core.expr.visitor import identify_variables
from pyomo.contrib.appsi.solvers.highs import Highs
from pyomo.contrib.appsi.base import TerminationCondition
from tesep.tes_model import ThermalStoragePlanningModel
from tesep.tes_data import ThermalStorageData
from tesep.time_domain import hours_before

from pathlib import Path

THREE_ZONE = Path(__file__).parents[2] / "data" / "three_zone"


# Helper functions
def single_unit_data(hours=4, rep_periods=1, **unit_overrides):
    unit = {
        "zone": 1,
        "existing_power_capacity": 0.0,
        "existing_energy_capacity": 0.0,
        "new_build": True,
        "max_power_capacity": 10.0,
        "max_energy_capacity": 40.0,
        "max_charge_capacity": 30.0,
        "min_duration": 4.0,
        "max_duration": 4.0,
        "charge_efficiency": 0.9,
        "discharge_efficiency": 0.9,
        "mwh_per_mmbtu": 0.293,
        "heat_price": 50.0,
        "fixed_om_cost_power": 1.0,
    }
    unit.update(unit_overrides)
    num_hours = hours * rep_periods
    zones = {
        1: {
            "demand": [5.0] * num_hours,
            "supply_capacity": 100.0,
            "supply_price": [10.0] * num_hours,
        }
    }
    data = ThermalStorageData()
    data.load_from_dict(
        {"tes": unit},
        zones,
        {"rep_periods": rep_periods, "hours_per_subperiod": hours},
    )
    return data


def build(data, config=None):
    mod_object = ThermalStoragePlanningModel(data=data, config=config)
    mod_object.create_model()
    return mod_object


def linear_coefficients(expr):
    repn = generate_standard_repn(expr, compute_values=True)
    return {v.name: c for v, c in zip(repn.linear_vars, repn.linear_coefs)}


def variable_names(con):
    return {v.name for v in identify_variables(con.body)}


highs_available = bool(Highs().available())


class TestDispatchBalance(unittest.TestCase):
    def test_minimum_output_coupling_coefficient(self):
        b = build(single_unit_data()).model.thermalStorage
        for hour in [1, 3]:
            coefs = linear_coefficients(b.minimum_output_coupling["tes", hour].body)
            soc = coefs[b.stateOfCharge["tes", hour].name]
            use = coefs[b.use["tes", hour].name]
            # use >= SoC / max_duration with max_duration = 4
            self.assertEqual(soc / use, -0.25)

    def test_recursion_structure(self):
        m = build(single_unit_data(hours=4, rep_periods=2)).model
        b = m.thermalStorage
        self.assertEqual(list(m.startHours), [1, 5])
        self.assertEqual(len(b.state_of_charge_start), 2)
        self.assertEqual(len(b.state_of_charge_interior), 6)
        # start hour closes the cycle on the last hour of its own subperiod,
        # charging there enters without efficiency loss
        coefs = linear_coefficients(b.state_of_charge_start[5, "tes"].body)
        self.assertIn(b.stateOfCharge["tes", 8].name, coefs)
        self.assertAlmostEqual(
            abs(coefs[b.charge["tes", 5].name]),
            abs(coefs[b.stateOfCharge["tes", 5].name]),
        )
        coefs = linear_coefficients(b.state_of_charge_interior[6, "tes"].body)
        self.assertAlmostEqual(
            abs(coefs[b.charge["tes", 6].name]),
            0.9 * abs(coefs[b.stateOfCharge["tes", 6].name]),
        )
        # discharge is limited by the wrapped previous hour
        self.assertEqual(hours_before(4, 5), 8)
        coefs = linear_coefficients(b.use_inventory_limit["tes", 5].body)
        self.assertIn(b.stateOfCharge["tes", 8].name, coefs)

    def test_standby_is_idempotent(self):
        data = single_unit_data(self_discharge=0.0)
        m = build(data).model
        b = m.thermalStorage
        for hour in m.hours:
            b.charge["tes", hour].fix(0)
            b.use["tes", hour].fix(0)
        for hour in m.interiorHours:
            coefs = linear_coefficients(b.state_of_charge_interior[hour, "tes"].body)
            self.assertEqual(len(coefs), 2)
            self.assertAlmostEqual(
                coefs[b.stateOfCharge["tes", hour].name]
                + coefs[b.stateOfCharge["tes", hour - 1].name],
                0.0,
            )
            for level in [0.0, 7.5, 30.0]:
                b.stateOfCharge["tes", hour].set_value(level)
                b.stateOfCharge["tes", hour - 1].set_value(level)
                con = b.state_of_charge_interior[hour, "tes"]
                self.assertAlmostEqual(value(con.body) - value(con.upper), 0.0)

    def test_no_power_output(self):
        m = build(single_unit_data()).model
        b = m.thermalStorage
        self.assertEqual(len(b.no_power_output), len(m.hours))
        con = b.no_power_output["tes", 2]
        self.assertEqual(value(con.upper), 0)
        self.assertEqual(value(con.lower), 0)

    def test_policy_components_absent_by_default(self):
        m = build(single_unit_data()).model
        b = m.thermalStorage
        self.assertEqual(len(b.reserveCharge), 0)
        self.assertEqual(len(b.regulationCharge), 0)
        self.assertFalse(hasattr(b, "capacityReserveTES"))
        self.assertFalse(hasattr(b, "energyShareTES"))
        self.assertFalse(hasattr(m, "hourly_matching"))
        self.assertEqual(
            m.contributions.names("power_balance"), ["system_supply", "tes_charging"]
        )

    def test_reserve_and_regulation_are_exclusive(self):
        data = ThermalStorageData()
        data.load_csv(THREE_ZONE)
        m = build(
            data,
            config={"capacity_reserve_margin": 1, "operational_reserves": True},
        ).model
        b = m.thermalStorage
        self.assertEqual(sorted(m.reserveMarginStorage), ["tes_day", "tes_lds"])
        self.assertEqual(list(m.regulationStorage), ["tes_day"])
        self.assertIn(("tes_day", 3), b.reserve_within_inventory)

        # enrolled in both: reserve virtual charging replaces regulation
        day = variable_names(b.charge_capacity_limit["tes_day", 3])
        self.assertIn(b.reserveCharge["tes_day", 3].name, day)
        self.assertIn(b.charge["tes_day", 3].name, day)
        self.assertNotIn(b.regulationCharge["tes_day", 3].name, day)
        # regulation is still offered and limited on its own
        self.assertIn(("tes_day", 3), b.regulation_charge_limit)

        lds = variable_names(b.charge_capacity_limit["tes_lds", 3])
        self.assertIn(b.reserveCharge["tes_lds", 3].name, lds)
        self.assertIn(b.charge["tes_lds", 3].name, lds)

        # reserve discharge shares the output envelope
        out = variable_names(b.use_power_limit["tes_lds", 3])
        self.assertIn(b.reserveDischarge["tes_lds", 3].name, out)

    def test_regulation_without_reserve_margin(self):
        data = ThermalStorageData()
        data.load_csv(THREE_ZONE)
        m = build(data, config={"operational_reserves": True}).model
        b = m.thermalStorage
        self.assertEqual(len(m.reserveMarginStorage), 0)
        day = variable_names(b.charge_capacity_limit["tes_day", 3])
        self.assertIn(b.regulationCharge["tes_day", 3].name, day)
        self.assertIn(b.charge["tes_day", 3].name, day)

    @unittest.skipUnless(highs_available, "HiGHS is not available")
    def test_minimum_output_holds_in_solution(self):
        mod_object = build(single_unit_data(hours=6))
        opt = Highs()
        mod_object.results = opt.solve(mod_object.model)
        self.assertEqual(
            mod_object.results.termination_condition, TerminationCondition.optimal
        )
        m = mod_object.model
        b = m.thermalStorage
        energy = value(b.totalEnergyCapacity["tes"])
        for hour in m.hours:
            soc = value(b.stateOfCharge["tes", hour])
            self.assertGreaterEqual(soc, -1e-7)
            self.assertLessEqual(soc, energy + 1e-6)
            self.assertGreaterEqual(value(b.use["tes", hour]), soc / 4.0 - 1e-7)
            self.assertAlmostEqual(value(b.power["tes", hour]), 0.0)

    @unittest.skipUnless(highs_available, "HiGHS is not available")
    def test_state_of_charge_above_capacity_is_infeasible(self):
        mod_object = build(single_unit_data())
        b = mod_object.model.thermalStorage
        # maximum buildable energy is 40 MWh
        b.stateOfCharge["tes", 2].fix(50.0)
        opt = Highs()
        opt.config.load_solution = False
        results = opt.solve(mod_object.model)
        self.assertIn(
            results.termination_condition,
            [
                TerminationCondition.infeasible,
                TerminationCondition.infeasibleOrUnbounded,
            ],
        )
