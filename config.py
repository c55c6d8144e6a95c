# Configuration file for the GCP Resource Audit
# You can modify these values to customize the audit behavior

# Root directory for CSV reports
OUTPUT_DIR = "output"

# Report file names (one per resource kind)
TERMINATED_COMPUTE_INSTANCES_FILE = "compute_instances_terminated.csv"
IDLE_EXTERNAL_IPS_FILE = "idle_external_ips.csv"
FIREWALL_RULES_FILE = "firewall_permissive_rules.csv"

# Instances stopped for longer than this many days are reported
TERMINATED_DAYS_THRESHOLD = 90

# Source range that marks a firewall rule as open to the internet
PERMISSIVE_SOURCE_RANGE = "0.0.0.0/0"

# Maximum number of parallel workers for (project, report) tasks
MAX_WORKERS = 10

# Stop the whole run on the first failed task instead of reporting it at the end
FAIL_FAST = False

# Logging
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
