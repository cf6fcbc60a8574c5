# utils/constants.py

# --- Top-Level Result Directories ---
# Sequentially numbered for proper sorting
CONFIG_DIR = "01_RunConfiguration"          # Run config, hash, metadata
MASTER_SPLITS_DIR = "02_MasterDataSplits"   # Single train-total/holdout/test split
SIMULATION_DIR = "03_SimulationResults"     # Flat report, per-round table
PLOTS_DIR = "04_SimulationPlots"            # Scores by round

TOP_LEVEL_RESULT_DIRS = [
    CONFIG_DIR,
    MASTER_SPLITS_DIR,
    SIMULATION_DIR,
    PLOTS_DIR,
]

# --- File Names ---
CONFIG_USED_FILE = "config_used.json"
CONFIG_HASH_FILE = "config_hash.txt"
RUN_METADATA_FILE = "run_metadata.json"
SPLIT_SUMMARY_FILE = "split_summary.json"
REPORT_FILE = "simulation_report.parquet"
REPLICATES_REPORT_FILE = "replicates_report.parquet"
ROUNDS_FILE = "rounds_summary.parquet"
SELECTED_FEATURES_FILE = "selected_features.json"
SCORES_PLOT_FILE = "scores_by_round.png"
USAGE_PLOT_FILE = "holdout_usage_by_round.png"
LOG_FILE = "simulation.log"

# --- Score Names (one report row per round and score) ---
TRAIN_AUC = "train_auc"
CV_AUC = "cv_auc"
HOLDOUT_AUC = "holdout_auc"
TEST_AUC = "test_auc"
THRESHOLDOUT_AUC = "thresholdout_auc"

SCORE_NAMES = [TRAIN_AUC, CV_AUC, HOLDOUT_AUC, TEST_AUC, THRESHOLDOUT_AUC]

# --- Flat report columns ---
REPORT_COLUMNS = [
    "round",
    "n_train",
    "score_name",
    "score_value",
    "method",
    "num_features",
    "holdout_access_count",
    "cum_holdout_access_count",
    "cum_budget_consumption",
]
