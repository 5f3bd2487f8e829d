# src/loaders/impact_factor_db_loader.py
"""
Database loader for finished impact factors
"""
import logging
import pandas as pd
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from src.models.base import DatabaseManager
from src.models.models import ImpactFactor
from src.loaders.csv_loader import load_impact_factors_from_csv

logger = logging.getLogger(__name__)

# DataFrame column -> ImpactFactor attribute
COLUMN_ATTRIBUTES = {
    'material': 'material',
    'lifeCycleStage': 'life_cycle_stage',
    'disposition': 'disposition',
    'corporateSource': 'corporate_source',
    'impactCategory': 'impact_category',
    'impactUnits': 'impact_units',
    'impactFactor': 'impact_factor',
    'impliedMiles': 'implied_miles',
    'categoryLong': 'category_long',
    'exportDate': 'export_date',
    'processingDate': 'processing_date',
}


def _to_python(value):
    """Convert pandas scalars (NaN, Timestamp) to values SQLAlchemy accepts"""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, pd.Timestamp):
        return value.date()
    return value


class ImpactFactorDatabaseLoader:
    """Handles loading finished impact factors into the database"""

    def __init__(self, db_manager: Optional[DatabaseManager] = None, session: Optional[Session] = None):
        """
        Initialize the loader with optional database manager and session

        Args:
            db_manager: Database manager. If None, one is built from DATABASE_URL.
            session: SQLAlchemy session. If None, creates new session.
        """
        self.db_manager = db_manager or DatabaseManager()
        self.db_manager.create_tables()
        self.session = session or self.db_manager.SessionLocal()
        self._owns_session = session is None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._owns_session:
            self.session.close()

    def load_dataframe(self, df: pd.DataFrame) -> Dict[str, Any]:
        """
        Replace the stored impact factors for each export date in the DataFrame

        Rows already stored for the same export date are deleted first, so
        reloading an export is idempotent.

        Raises:
            SQLAlchemyError: If the load fails; the transaction is rolled back
        """
        export_dates = sorted({_to_python(value) for value in df['exportDate']})
        logger.info(f"Loading {len(df)} impact factors for export date(s) {export_dates}")

        try:
            replaced = self.session.query(ImpactFactor).filter(
                ImpactFactor.export_date.in_(export_dates)
            ).delete(synchronize_session=False)

            records = [
                ImpactFactor(**{
                    attribute: _to_python(row[column])
                    for column, attribute in COLUMN_ATTRIBUTES.items()
                })
                for row in df.to_dict('records')
            ]
            self.session.add_all(records)
            self.session.commit()

        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error loading impact factors: {str(e)}")
            raise

        logger.info(f"✓ Saved {len(records)} impact factors to database (replaced {replaced})")
        return {
            "success": True,
            "records_processed": len(records),
            "records_replaced": replaced
        }

    def load_from_csv(self, csv_path: str) -> Dict[str, Any]:
        """
        Load finished impact factors from CSV file into database

        Args:
            csv_path: Path to CSV file written by save_impact_factors

        Returns:
            Dictionary with loading statistics
        """
        logger.info(f"Loading data from CSV: {csv_path}")
        return self.load_dataframe(load_impact_factors_from_csv(csv_path))

    def read_impact_factors(self, export_date=None) -> pd.DataFrame:
        """Read stored impact factors back into a DataFrame with pipeline column names"""
        query = self.session.query(ImpactFactor)
        if export_date is not None:
            query = query.filter(ImpactFactor.export_date == export_date)

        rows = [
            {column: getattr(record, attribute) for column, attribute in COLUMN_ATTRIBUTES.items()}
            for record in query.all()
        ]
        return pd.DataFrame(rows, columns=list(COLUMN_ATTRIBUTES))
