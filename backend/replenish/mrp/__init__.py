# Planning engine: pure functions over immutable policy snapshots and buckets.
from replenish.mrp.calendar import build_buckets, lead_time_buckets
from replenish.mrp.detection import detect
from replenish.mrp.lot_sizing import resolve
from replenish.mrp.netting import explode
from replenish.mrp.recommendations import generate

__all__ = [
    "build_buckets",
    "lead_time_buckets",
    "detect",
    "resolve",
    "explode",
    "generate",
]
