# post-scheduler - Core (functional layer)
# Entities, ports and pure services; no I/O here
