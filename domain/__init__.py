"""Domain layer: pure entities, pricing rule and error taxonomy."""
