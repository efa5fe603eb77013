# utils/constants.py

# --- Output Artifact ---
# Column order of the per-grid result file.
RESULT_HEADER = ["alpha", "numEpochs", "lambda", "miniBatchSize", "beta", "mu"]
NOT_APPLICABLE = "NA"
FLOAT_FORMAT = "{:f}"

# --- Task Record Keys (JSON Lines input stream) ---
RECORD_OUTPATH = "outpath"
RECORD_ALPHA = "alpha"
RECORD_NUM_EPOCHS = "numEpochs"
RECORD_LAMBDA = "lambda"
RECORD_MINI_BATCH_SIZE = "miniBatchSize"

RECORD_AXES = [
    RECORD_ALPHA,
    RECORD_NUM_EPOCHS,
    RECORD_LAMBDA,
    RECORD_MINI_BATCH_SIZE,
]

# --- Execution Defaults ---
DEFAULT_THREADS = 4
DEFAULT_BATCH_SIZE = 1
DEFAULT_READER_FRACTION = 0.2          # one reader per five threads of budget
DEFAULT_MAX_GRID_PERMUTATIONS = 10000  # per grid, guards against combinatoric explosions

# --- Logging ---
LOG_DIR = "logs"
LOG_FILE = "calibration.log"

# --- Dataset Columns ---
X_COLUMN = "x"
Y_COLUMN = "y"
