"""
Shared fixtures: small dataset files written to a temp directory.
"""

import pytest

VACCINATION_CSV = (
    "zip_code,etl_timestamp,partially_vaccinated,fully_vaccinated\n"
    "19103,2021-05-01 17:22:10,40,100\n"
    "19104,2021-05-01 17:22:10,10,300\n"
    "19104,2021-05-02 17:22:10,5,0\n"
)

POPULATION_CSV = (
    "zip_code,population\n"
    "19103,50000\n"
    "19104,30000\n"
)

PROPERTY_CSV = (
    "market_value,total_livable_area,zip_code\n"
    "200000,1000,19103\n"
    "300000,2000,19103-1234\n"
    "150000,1500,19104\n"
)


@pytest.fixture
def write_file(tmp_path):
    """Write text to a file under tmp_path and return its path as str."""
    def _write(name: str, text: str) -> str:
        path = tmp_path / name
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        return str(path)
    return _write


@pytest.fixture
def data_files(write_file):
    """Paths of one valid file per dataset."""
    return {
        "covid": write_file("covid.csv", VACCINATION_CSV),
        "population": write_file("population.csv", POPULATION_CSV),
        "properties": write_file("properties.csv", PROPERTY_CSV),
    }
