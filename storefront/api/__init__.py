version_prefix = "/api/v1"
cur_version = "1.0.0"
