"""Pipeline services: compile, package, sign, notarize and the orchestrator."""
