# post-scheduler - Services
# Retry and performance checks used by the publish and scheduler components
