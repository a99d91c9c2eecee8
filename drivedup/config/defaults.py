# drivedup Default Configuration
# Full default configuration as Python dict and YAML generator

import copy
from typing import Any

import yaml

DEFAULT_CONFIG: dict[str, Any] = {
    "backend": {
        "type": "local",
        "local_root": "~/drivedup/store",
        "page_size": 100,
        "cursor_ttl_seconds": 3600,
        "credentials_file": "~/.config/drivedup/credentials.json",
        "token_file": "~/.config/drivedup/token.json",
        "max_retries": 5,
    },
    "runtime": {
        "time_limit_seconds": 330,
        "execution_ceiling_seconds": 360,
        "resume_delay_seconds": 60,
        "progress_every": 20,
        "listing_retries": 0,
        "destination_suffix": " duplicate",
    },
    "storage": {
        "state_dir": "~/.config/drivedup",
        "checkpoint_file": "checkpoint.yaml",
        "jobs_file": "jobs.yaml",
        "log_file": "logs.csv",
        "schedule_file": "resume.yaml",
    },
    "output": {
        "verbose": False,
        "colored": True,
    },
}


def get_default_config() -> dict[str, Any]:
    """Return a deep copy of the default configuration."""
    return copy.deepcopy(DEFAULT_CONFIG)


def generate_default_config() -> str:
    """Generate default configuration as YAML string with comments."""
    header = """# drivedup Configuration
#
# backend.type:
#   - local: a directory on disk acts as the remote store (local_root)
#   - drive: Google Drive, authorized through credentials_file/token_file
#
# runtime.time_limit_seconds is the work budget of one execution. It must stay
# below execution_ceiling_seconds so the final checkpoint can be written.
# A paused job resumes after resume_delay_seconds (drivedup copy --follow,
# or drivedup resume from cron).

"""
    return header + yaml.dump(DEFAULT_CONFIG, default_flow_style=False, sort_keys=False, allow_unicode=True)
