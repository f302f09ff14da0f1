"""
Constants for the Raw Material Cost Tracker.

This module defines system-wide constants including:
- Application metadata
- Numeric precision for prices and recipe aggregates
- Snapshot reason codes and change-log field names
- Propagation tuning
"""

from decimal import Decimal

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "Raw Material Cost Tracker"
APP_VERSION = "0.1.0"
DATABASE_VERSION = "1.0"
DATABASE_FILENAME = "rm_cost_tracker.db"

# Environment variables
ENV_VAR_ENVIRONMENT = "RM_COST_TRACKER_ENV"
ENV_VAR_DATABASE_URL = "RM_COST_TRACKER_DATABASE_URL"

# ============================================================================
# Numeric Precision
# ============================================================================

# Prices are stored with 4 decimal places (Numeric(12, 4))
PRICE_QUANTUM = Decimal("0.0001")

# Line totals keep the exact product of a 4 dp quantity and a 4 dp price
LINE_TOTAL_QUANTUM = Decimal("0.00000001")

# Recipe price per unit is rounded to 2 decimal places
PRICE_PER_UNIT_QUANTUM = Decimal("0.01")

# ============================================================================
# Audit Trail
# ============================================================================

# Actor recorded when no user is supplied (e.g. scheduled sync)
SYSTEM_ACTOR = "system"

# Field name recorded on recipe change log entries written by propagation
CHANGE_FIELD_PRICE = "price"

# Snapshot reason codes
SNAPSHOT_REASON_PRICE_CHANGE = "price_change"
SNAPSHOT_REASON_MANUAL = "manual"

SNAPSHOT_REASONS = [
    SNAPSHOT_REASON_PRICE_CHANGE,
    SNAPSHOT_REASON_MANUAL,
]

# Prefix and width for generated material codes (RM00001)
MATERIAL_CODE_PREFIX = "RM"
MATERIAL_CODE_WIDTH = 5

# ============================================================================
# Propagation
# ============================================================================

# Attempts per recipe when an optimistic version check fails
PROPAGATION_MAX_RETRIES = 3
