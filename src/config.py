"""
src/config.py

Business-rule constants and runtime configuration for the impact factor pipeline
"""
import os
from dataclasses import dataclass, replace
from typing import Tuple

from dotenv import load_dotenv
from sqlalchemy.engine.url import URL

load_dotenv()


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    """Read a comma-separated environment variable as a tuple of strings"""
    raw = os.getenv(name)
    if raw is None:
        return default
    return tuple(item.strip() for item in raw.split(',') if item.strip())


DATABASE = {
    'drivername': os.getenv('DB_DRIVER', 'sqlite'),
    'host': os.getenv('DB_HOST') or None,
    'port': int(os.getenv('DB_PORT')) if os.getenv('DB_PORT') else None,
    'username': os.getenv('DB_USER') or None,
    'password': os.getenv('DB_PASSWORD') or None,
    'database': os.getenv('DB_NAME', 'impact_factors.db')
}

DATABASE_URL = URL.create(**DATABASE)


@dataclass(frozen=True)
class PipelineConfig:
    """Configuration for impact factor transformation"""

    # Raw export layout
    header_rows: int = 1
    aggregate_scope: str = 'Total'
    identifier_delimiter: str = '_'

    # Biogenic accounting variants (variant A, variant B)
    variant_tags: Tuple[str, str] = ('-1/+1', '0/0')
    biogenic_token: str = 'biogenic'

    # Transport handling
    transport_suffix: str = '_transport'
    production_transport: str = 'production_transport'
    landfill_disposition: str = 'landfilling'
    aggregate_disposition: str = 'recyclingAggregate'
    default_implied_miles: float = 20.0
    aggregate_implied_miles: float = 5.0

    # Recycling-type classification for transport reallocation
    recycling_prefix: str = 'recycling'
    recycling_whitelist: Tuple[str, ...] = ()
    recycling_exclusions: Tuple[str, ...] = ('recyclingAggregate',)

    out_of_scope_dispositions: Tuple[str, ...] = ('reuse',)

    # Imputation
    other_material: str = 'Other'
    other_dispositions: Tuple[str, ...] = (
        'landfilling', 'combustion', 'combustionNoER', 'production', 'recyclingGeneric'
    )
    production_exempt_materials: Tuple[str, ...] = ()
    production_transport_exempt_materials: Tuple[str, ...] = ()

    # Finalization
    deprecated_categories: Tuple[str, ...] = ()

    output_dir: str = 'data/output'

    @classmethod
    def from_env(cls, **overrides) -> 'PipelineConfig':
        """Build a config from WIC_* environment variables, then apply overrides"""
        config = cls()
        env_values = {}

        if os.getenv('WIC_HEADER_ROWS'):
            env_values['header_rows'] = int(os.getenv('WIC_HEADER_ROWS'))
        if os.getenv('WIC_AGGREGATE_SCOPE'):
            env_values['aggregate_scope'] = os.getenv('WIC_AGGREGATE_SCOPE')
        if os.getenv('WIC_OUTPUT_DIR'):
            env_values['output_dir'] = os.getenv('WIC_OUTPUT_DIR')

        variant_tags = _env_list('WIC_VARIANT_TAGS', config.variant_tags)
        if len(variant_tags) != 2:
            raise ValueError(f"WIC_VARIANT_TAGS must name exactly two tags, got {variant_tags}")
        env_values['variant_tags'] = variant_tags

        env_values['deprecated_categories'] = _env_list(
            'WIC_DEPRECATED_CATEGORIES', config.deprecated_categories)
        env_values['production_exempt_materials'] = _env_list(
            'WIC_PRODUCTION_EXEMPT_MATERIALS', config.production_exempt_materials)
        env_values['production_transport_exempt_materials'] = _env_list(
            'WIC_PRODUCTION_TRANSPORT_EXEMPT_MATERIALS', config.production_transport_exempt_materials)
        env_values['recycling_whitelist'] = _env_list(
            'WIC_RECYCLING_WHITELIST', config.recycling_whitelist)

        env_values.update({key: value for key, value in overrides.items() if value is not None})
        return replace(config, **env_values)

    def is_recycling_disposition(self, disposition: str) -> bool:
        """
        Decide whether a disposition is recycling-type for transport reallocation

        Explicit whitelist entries always qualify; otherwise the disposition must
        start with the recycling prefix. Exclusions win over both.
        """
        if disposition in self.recycling_exclusions:
            return False
        if disposition in self.recycling_whitelist:
            return True
        return disposition.startswith(self.recycling_prefix)
