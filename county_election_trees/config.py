import os
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

# Load environment variables from .env file if it exists
load_dotenv()

# Paths
PROJ_ROOT = Path(__file__).resolve().parents[1]
logger.info(f"PROJ_ROOT path is: {PROJ_ROOT}")

DATA_DIR = PROJ_ROOT / "data"
RAW_DATA_DIR = DATA_DIR / "raw"
PROCESSED_DATA_DIR = DATA_DIR / "processed"

REPORTS_DIR = PROJ_ROOT / "reports"
FIGURES_DIR = REPORTS_DIR / "figures"

MAIN_TABLE_CSV = PROCESSED_DATA_DIR / "main_df.csv"
MAIN_TABLE_PARQUET = PROCESSED_DATA_DIR / "main_df.parquet"
AUDIT_TABLE_PARQUET = PROCESSED_DATA_DIR / "county_audit.parquet"

# USDA ERS county-level data sets
USDA_BASE_URL = "https://www.ers.usda.gov/webdocs/DataFiles/48747"

# Source locations: local paths or http(s) URLs, overridable from .env
SOURCE_LOCATIONS = {
    "census": os.getenv("CENSUS_PATH", str(RAW_DATA_DIR / "acs2015_county_data.pkl")),
    "density": os.getenv("DENSITY_PATH", str(RAW_DATA_DIR / "county_population_density.csv")),
    "education": os.getenv("EDUCATION_URL", f"{USDA_BASE_URL}/Education.csv"),
    "unemployment": os.getenv("UNEMPLOYMENT_URL", f"{USDA_BASE_URL}/Unemployment.csv"),
    "population": os.getenv("POPULATION_URL", f"{USDA_BASE_URL}/PopulationEstimates.csv"),
    "poverty": os.getenv("POVERTY_URL", f"{USDA_BASE_URL}/PovertyEstimates.csv"),
    "election": os.getenv("ELECTION_PATH", str(RAW_DATA_DIR / "county_presidential_results.csv")),
}

HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "60"))

# Route loguru through tqdm.write so sweep progress bars stay intact
# https://github.com/Delgan/loguru/issues/135
from tqdm import tqdm

logger.remove()
logger.add(lambda msg: tqdm.write(msg, end=""), colorize=True)
