# src/loaders/csv_loader.py
"""
File loaders for saving finished impact factors to CSV and pickle
"""
import os
import pandas as pd
from datetime import datetime
import logging

from src.models.impact_models import FINAL_COLUMNS

logger = logging.getLogger(__name__)

IMPACT_FACTORS_CSV = "impact_factors.csv"
IMPACT_FACTORS_PICKLE = "impact_factors.pkl"
AVAILABILITY_MATRIX_CSV = "availability_matrix.csv"


def save_impact_factors(df: pd.DataFrame, output_dir: str = "data/output") -> dict:
    """
    Save finished impact factors as CSV and as a pandas pickle

    Args:
        df: Finished impact factors
        output_dir: Directory to save files

    Returns:
        Dictionary with 'csv' and 'pickle' file paths
    """
    os.makedirs(output_dir, exist_ok=True)

    csv_path = os.path.join(output_dir, IMPACT_FACTORS_CSV)
    pickle_path = os.path.join(output_dir, IMPACT_FACTORS_PICKLE)

    df.to_csv(csv_path, index=False, date_format="%Y-%m-%d")
    df.to_pickle(pickle_path)
    logger.info(f"Saved {len(df)} impact factors to {csv_path} and {pickle_path}")

    return {"csv": csv_path, "pickle": pickle_path}


def load_impact_factors_from_csv(filepath: str) -> pd.DataFrame:
    """
    Load finished impact factors from CSV file

    Args:
        filepath: Path to CSV file

    Returns:
        DataFrame with impact factors
    """
    # Read CSV with proper date parsing
    df = pd.read_csv(filepath, parse_dates=["exportDate", "processingDate"])
    logger.info(f"Loaded {len(df)} impact factors from {filepath}")

    return df[FINAL_COLUMNS]


def load_impact_factors_from_pickle(filepath: str) -> pd.DataFrame:
    """Load finished impact factors from a pandas pickle"""
    df = pd.read_pickle(filepath)
    logger.info(f"Loaded {len(df)} impact factors from {filepath}")
    return df


def save_availability_matrix(matrix: pd.DataFrame, output_dir: str = "data/output") -> str:
    """
    Save the material x disposition availability matrix to CSV

    Args:
        matrix: Availability matrix with a material column and one boolean column per disposition
        output_dir: Directory to save the file

    Returns:
        Path to saved CSV file
    """
    os.makedirs(output_dir, exist_ok=True)

    filepath = os.path.join(output_dir, AVAILABILITY_MATRIX_CSV)
    matrix.to_csv(filepath, index=False)
    logger.info(f"Saved availability matrix ({len(matrix)} materials) to {filepath}")

    return filepath


def save_summary_report(results: dict, output_dir: str = "data/output") -> str:
    """
    Save pipeline execution summary to CSV

    Args:
        results: Dictionary of stage name to {'rows': ..., 'seconds': ...}
        output_dir: Directory to save report

    Returns:
        Path to saved report
    """
    os.makedirs(output_dir, exist_ok=True)

    # Convert results to DataFrame
    summary_data = []
    for stage, result in results.items():
        summary_data.append({
            'stage': stage,
            'rows': result.get('rows', 0),
            'execution_time': result.get('seconds', 'N/A')
        })

    df = pd.DataFrame(summary_data)

    # Save to CSV
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filename = f"pipeline_summary_{timestamp}.csv"
    filepath = os.path.join(output_dir, filename)

    df.to_csv(filepath, index=False)
    logger.info(f"Saved pipeline summary to {filepath}")

    return filepath
