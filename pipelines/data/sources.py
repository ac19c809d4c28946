from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class SourceSpec:
    """Raw layout of one input table and the rename into the internal schema."""
    name: str
    id_col: str
    columns: Dict[str, str]          # raw header (or long-table attribute) -> internal name
    pad: bool = True                 # False when the source already ships 5-char string ids
    long: bool = False
    name_col: str = "Attribute"
    value_col: str = "Value"
    text_columns: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def required(self) -> List[str]:
        if self.long:
            return [self.id_col, self.name_col, self.value_col]
        return [self.id_col, *self.columns]


CENSUS = SourceSpec(
    name="census",
    id_col="CensusId",
    columns={
        "State": "state",
        "County": "county",
        "TotalPop": "total_pop",
        "Hispanic": "pct_hispanic",
        "White": "pct_white",
        "Black": "pct_black",
        "Asian": "pct_asian",
        "IncomePerCap": "income_per_cap",
        "Professional": "pct_professional",
        "Service": "pct_service",
        "Production": "pct_production",
        "Drive": "pct_drive",
        "Transit": "pct_transit",
        "MeanCommute": "mean_commute",
        "SelfEmployed": "pct_self_employed",
    },
    text_columns=("state", "county"),
)

DENSITY = SourceSpec(
    name="density",
    id_col="GEOID",
    columns={"B01001_calc_PopDensity": "pop_density"},
    pad=False,
)

EDUCATION = SourceSpec(
    name="education",
    id_col="FIPS Code",
    columns={
        "Percent of adults with less than a high school diploma, 2014-18": "pct_less_hs",
        "Percent of adults with a bachelor's degree or higher, 2014-18": "pct_bachelors",
    },
)

UNEMPLOYMENT = SourceSpec(
    name="unemployment",
    id_col="FIPS_Code",
    columns={
        "Unemployment_rate_2019": "unemployment_rate",
        "Median_Household_Income_2019": "median_hh_income",
    },
    long=True,
)

POPULATION = SourceSpec(
    name="population",
    id_col="FIPStxt",
    columns={
        "R_birth_2019": "birth_rate",
        "R_death_2019": "death_rate",
        "R_NET_MIG_2019": "net_migration_rate",
    },
)

POVERTY = SourceSpec(
    name="poverty",
    id_col="FIPStxt",
    columns={"PCTPOVALL_2019": "poverty_pct"},
    long=True,
)

ELECTION = SourceSpec(
    name="election",
    id_col="county_fips",
    columns={
        "state_name": "state_name",
        "votes_dem": "dem_votes",
        "votes_gop": "gop_votes",
    },
    text_columns=("state_name",),
)

SOURCE_SPECS: Dict[str, SourceSpec] = {
    s.name: s for s in (CENSUS, DENSITY, EDUCATION, UNEMPLOYMENT, POPULATION, POVERTY, ELECTION)
}

# Left-joined onto the census anchor in this order
JOIN_ORDER: Tuple[str, ...] = ("density", "education", "unemployment", "population", "poverty", "election")

FEATURE_COLUMNS: List[str] = [
    "total_pop",
    "pct_hispanic",
    "pct_white",
    "pct_black",
    "pct_asian",
    "income_per_cap",
    "pct_professional",
    "pct_service",
    "pct_production",
    "pct_drive",
    "pct_transit",
    "mean_commute",
    "pct_self_employed",
    "pop_density",
    "pct_less_hs",
    "pct_bachelors",
    "unemployment_rate",
    "median_hh_income",
    "birth_rate",
    "death_rate",
    "net_migration_rate",
    "poverty_pct",
]

LABEL_COLUMN = "majority"
