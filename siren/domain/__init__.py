"""Safety escalation domain: models, policy, timers and the engine."""
