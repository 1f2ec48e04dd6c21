"""Domain layer: pure reconciliation logic and the ports it depends on."""
