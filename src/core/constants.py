"""Core constants used across h5cell modules.

This module centralizes container paths, attribute names and layer kinds.
Keeping values here avoids magic literals in resolution and merge logic.
"""

from __future__ import annotations

ASSAYS_ROOT = "assays"
REDUCTIONS_ROOT = "reductions"
GRAPHS_ROOT = "graphs"
IMAGES_ROOT = "images"
COMMANDS_ROOT = "commands"
MISC_ROOT = "misc"
TOOLS_ROOT = "tools"
META_DATA_ROOT = "meta.data"
CELL_NAMES_PATH = "cell.names"

ACTIVE_ASSAY_ATTR = "active.assay"
GLOBAL_ATTR = "global"
ASSAY_USED_ATTR = "assay.used"
IMAGE_ASSAY_ATTR = "assay"
KEY_ATTR = "key"
DIMS_ATTR = "dims"

FEATURES_NAME = "features"
SCALED_FEATURES_NAME = "scaled.features"
CELL_EMBEDDINGS_NAME = "cell.embeddings"
FEATURE_LOADINGS_NAME = "feature.loadings"
STDEV_NAME = "stdev"
COORDINATES_NAME = "coordinates"
IMAGE_NAME = "image"
SPARSE_MEMBERS = ("data", "indices", "indptr")

COUNTS_LAYER = "counts"
DATA_LAYER = "data"
SCALE_DATA_LAYER = "scale.data"
LAYER_KINDS = (COUNTS_LAYER, DATA_LAYER, SCALE_DATA_LAYER)
DEFAULT_DIMENSION_LAYERS = (COUNTS_LAYER, DATA_LAYER)

REDUCTION_GLOBAL_DEFAULT = False
IMAGE_GLOBAL_DEFAULT = True

GLOBAL_ONLY_TOKEN = "NA"
