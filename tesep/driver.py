from tesep.tes_model import ThermalStoragePlanningModel
from tesep.tes_data import ThermalStorageData
from tesep.tes_solution import ThermalStorageSolution
from pyomo.contrib.appsi.solvers.highs import Highs
import logging

logging.basicConfig(level=logging.INFO)

data_path = "./tesep/data/three_zone"
data_object = ThermalStorageData()
data_object.load_csv(data_path)
mod_object = ThermalStoragePlanningModel(
    data=data_object,
    config={"write_heat_prices": True},
)
mod_object.create_model()
print("model build")
opt = Highs()
mod_object.results = opt.solve(mod_object.model)
print(mod_object.results.termination_condition)
# mod_object.report_large_coefficients("large_coefficients.json")

save_numerical_results = True
if save_numerical_results:

    sol_object = ThermalStorageSolution()

    sol_object.load_from_model(mod_object)
    sol_object.write_outputs("./tes_results")
    sol_object.dump_json("./tes_results/tes_solution.json")
plot_results = True
if plot_results:
    sol_object.plot_state_of_charge(save_dir="./tes_results")
    sol_object.plot_annual_state_of_charge(save_dir="./tes_results")
