from __future__ import annotations

# Sections of "Multi-point dimensionality reduction to improve projection
# layout reliability" (Barahimi, Paulovich) used to tag log events.

DISTANCES = "distances"
DISTANCE_TRANSFORMS = "distances/transforms"
NEIGHBORHOOD_GRAPH = "neighborhood-graph"
INITIAL_LAYOUT = "force-layout/initial"
FORCE_LAYOUT = "force-layout"
REPULSIVE_FORCES = "force-layout/repulsion"
ATTRACTIVE_FORCES = "force-layout/attraction"
DISPLACEMENT = "force-layout/displacement"
PHASES = "force-layout/phases"
PRESSURES = "replication/pressures"
REPLICATION = "replication"
REPLICATION_SPLIT = "replication/split"
TRUSTWORTHINESS = "evaluation/trustworthiness"
SNAPSHOTS = "evaluation/snapshots"
PARALLEL_PROCESSING = "parallel-processing"
INPUT_DATA = "input"
OUTPUT_DATA = "output"
