from rtd.frs.model import FRSModel, REACHABLE_LEVEL
from rtd.frs.library import (FRSLibrary, FRSConfigurationError, load_frs, save_frs,
                             frs_from_dict, frs_to_dict)
from rtd.frs.synthetic import (make_synthetic_frs, make_synthetic_models,
                               unicycle_endpoint_polynomials, desired_control_polynomials,
                               DEFAULT_BRACKETS)
