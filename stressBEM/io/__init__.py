"""
Problem input from YAML/JSON configuration files.
"""

from .config import AnalysisProblem, load_config, setup_problem_from_config
