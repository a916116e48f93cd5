from .model import FCN, Model, sum_of_log_intensity, topological_order
