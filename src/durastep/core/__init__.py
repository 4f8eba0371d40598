"""Core subsystems: canonical hashing, checkpoint model, storage, logging, config."""
