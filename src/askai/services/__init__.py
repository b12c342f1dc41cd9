"""Gateway services: admission control, prompting, orchestration and patching."""
