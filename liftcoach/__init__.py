"""LiftCoach: workout plan generation, revision and strength analytics."""
