"""Synthetic data generators."""

from ipdr_intel.data.generators.base_generator import BaseGenerator
from ipdr_intel.data.generators.ipdr_generator import CSV_COLUMNS, IPDRGenerator, write_csv

__all__ = ["BaseGenerator", "IPDRGenerator", "CSV_COLUMNS", "write_csv"]
