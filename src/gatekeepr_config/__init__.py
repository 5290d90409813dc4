from .settings import Settings, config_dir, configure_logging, init_runtime, load_env_once, repo_root, rules_path

__all__ = [
    "Settings",
    "config_dir",
    "configure_logging",
    "init_runtime",
    "load_env_once",
    "repo_root",
    "rules_path",
]
