"""adios: user and meeting storage for the meeting-length enforcer."""
