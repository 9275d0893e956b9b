"""
Checks of the bundled compartmental models' epidemiological behaviour.
"""
import pytest
import numpy as np
from numpy.testing import assert_allclose

from epiode.models import MODELS, get_model, run_model
from epiode.models import seir, seirv, sir


@pytest.mark.parametrize("name, module", MODELS.items())
def test_models_conserve_population(name, module):
    trajectory = run_model(name)
    params = module.base_params.to_dict()
    assert trajectory.is_complete
    assert trajectory.names == module.COMPARTMENTS
    assert_allclose(trajectory.get_total(), params["population"], rtol=1e-6)


@pytest.mark.parametrize("name, module", MODELS.items())
def test_models_start_from_initial_population(name, module):
    trajectory = run_model(name)
    params = module.base_params.to_dict()
    initial_state = trajectory.get_state(0)
    assert trajectory.times[0] == params["time"]["start"]
    assert initial_state["S"] == params["population"] - params["infection_seed"]
    assert initial_state["I"] == params["infection_seed"]
    assert sum(initial_state.values()) == params["population"]


def test_sir_epidemic_curve():
    """
    N = 10000, R0 = 2, infectious period = 3 days, one initial infection, days 1 to 150.
    """
    trajectory = run_model("sir")
    assert_allclose(trajectory.times, np.arange(1, 151))

    # Infections rise to a single peak and then die away.
    peak_time, peak_value = trajectory.get_peak(["I"])
    assert 10 < peak_time < 45
    assert 1000 < peak_value < 2000
    assert trajectory["I"][-1] < 1

    # Not everyone is infected, herd immunity is reached first.
    final_recovered = trajectory["R"][-1]
    assert 7500 < final_recovered < 8500

    # Recovered compartment never shrinks.
    assert np.all(np.diff(trajectory["R"]) >= 0)
    assert np.all(np.diff(trajectory["S"]) <= 0)


def test_sir_derived_rates():
    params = sir.Parameters(**sir.base_params.to_dict())
    assert params.gamma == pytest.approx(1 / 3)
    assert params.beta == pytest.approx(2 / (3 * 10000))


def test_sir_no_epidemic_below_threshold():
    trajectory = run_model("sir", {"r0": 0.5})
    peak_time, peak_value = trajectory.get_peak(["I"])
    assert peak_time == 1
    assert peak_value == 1


def test_sir_solvers_agree():
    rk4_trajectory = run_model("sir", {"solver": {"type": "rk4", "step_size": 0.1}})
    adaptive_trajectory = run_model("sir", {"solver": {"type": "rk45", "rtol": 1e-9, "atol": 1e-9}})
    assert_allclose(rk4_trajectory.values, adaptive_trajectory.values, rtol=1e-4, atol=1e-4)


def test_sir_coarse_step_still_conserves():
    trajectory = run_model("sir", {"solver": {"type": "rk4", "step_size": 1.0}})
    assert_allclose(trajectory.get_total(), 10000, rtol=1e-6)


def test_seir_latency_delays_peak():
    sir_peak_time, sir_peak = run_model("sir").get_peak(["I"])
    seir_peak_time, seir_peak = run_model("seir").get_peak(["I"])
    assert seir_peak_time > sir_peak_time
    assert seir_peak < sir_peak


def test_seirv_vaccination_lowers_peak():
    common = {"time": {"start": 1, "end": 365, "step": 1}}
    _, sir_peak = run_model("sir", common).get_peak(["I"])
    seirv_trajectory = run_model("seirv", common)
    _, seirv_peak = seirv_trajectory.get_peak(seirv.INFECTIOUS_COMPARTMENTS)
    assert seirv_peak < sir_peak

    # Vaccination must reduce the peak compared with the same model without it.
    _, unvaccinated_peak = run_model("seirv", {"vaccination_rate": 0}).get_peak(["I", "Iv"])
    assert seirv_peak < unvaccinated_peak

    # People are vaccinated and some vaccinated people are still infected.
    assert seirv_trajectory["Sv"][1] > 0
    assert seirv_trajectory["Rv"][-1] > 0


def test_seirv_without_vaccination_matches_seir():
    seirv_trajectory = run_model("seirv", {"vaccination_rate": 0, "time": {"end": 150}})
    seir_trajectory = run_model("seir")
    for name in seir.COMPARTMENTS:
        assert_allclose(seirv_trajectory[name], seir_trajectory[name], rtol=1e-9, atol=1e-9)

    for name in ["Sv", "Ev", "Iv", "Rv"]:
        assert np.all(seirv_trajectory[name] == 0)


def test_seirv_full_protection():
    trajectory = run_model("seirv", {"protection": 1})
    assert np.all(trajectory["Ev"] == 0)
    assert np.all(trajectory["Iv"] == 0)
    assert trajectory["Sv"][-1] > 0


def test_get_model():
    assert get_model("sir") is sir
    with pytest.raises(ValueError):
        get_model("sirs")
