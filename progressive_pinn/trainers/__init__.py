"""Inner optimization loop run by the solver within a single training round."""
