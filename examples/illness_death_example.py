"""
Example of illness-death prediction from fitted additive hazards curves
"""

import logging
import numpy as np
import pandas as pd
from msaalen import ModelSet, IllnessDeathModel, TrajectorySimulator, TransitionRecords, RiskSetCounter, ModelEvaluator
from msaalen.utils import create_prediction_grid, expected_time_in_state


def make_curves(grid, slopes, columns):
    """Cumulative coefficients growing linearly in time"""
    frame = pd.DataFrame(np.outer(grid, slopes), columns=columns)
    frame.insert(0, "time", grid)
    return frame


def main():
    logging.basicConfig(level=logging.INFO)

    # Cumulative coefficient and variance curves as written by the fitting step
    grid = np.linspace(0, 10, 41)
    columns = ["(Intercept)", "Age>4 yrs", "Stage2", "Stage3"]
    slopes = {
        "1->2": [0.08, 0.04, 0.02, 0.05],
        "1->3": [0.02, 0.01, 0.01, 0.02],
        "2->3": [0.15, 0.05, 0.03, 0.06],
    }
    coefficients = {t: make_curves(grid, s, columns) for t, s in slopes.items()}
    variances = {t: make_curves(grid, [0.0005] * len(columns), columns) for t in slopes}
    model_set = ModelSet.from_frames(coefficients, variances)

    profile = {"Age": ">4 yrs", "Stage": 3}
    model = IllnessDeathModel.from_model_set(model_set, profile)

    times = np.array([0, 1, 2, 5, 10])
    matrices = model.predict_transition_matrix(times)
    print(f"Transition matrix at t = 5 for {profile}:")
    print(pd.DataFrame(matrices[3], index=model.states, columns=model.states).round(4))

    occupancy = model.predict_state_occupation(times)
    simulated = model.simulate(times, TrajectorySimulator(n_replicates=20000, random_state=42))
    print("\nState occupation, closed form vs simulation:")
    print(pd.DataFrame(occupancy, index=times, columns=model.states).round(4))
    print(simulated.to_frame().round(4))
    print("Paths:", simulated.path_counts)

    evaluator = ModelEvaluator()
    print(f"Max occupancy difference: {evaluator.max_occupancy_error(occupancy, simulated):.4f}")

    fine_grid = create_prediction_grid(model, n_points=201)
    print("\nExpected years in each state within 10 years:")
    print(expected_time_in_state(fine_grid, model.predict_state_occupation(fine_grid)).round(3))

    cif = model.cumulative_incidence("1->2")
    print("\nCumulative incidence of relapse:")
    print(cif.at([1, 2, 5, 10]).round(4))

    # Risk sets from start-stop records of state 1
    rng = np.random.default_rng(0)
    stop = rng.uniform(0.5, 10, size=200)
    relapse = TransitionRecords(np.zeros(200), stop, rng.binomial(1, 0.3, size=200), "1->2")
    counter = RiskSetCounter(relapse)
    print("\nRisk set of 1->2:")
    print(counter.summary([0, 2, 5, 8]))
    print(evaluator.check_cohort_consistency(counter))


if __name__ == "__main__":
    main()
