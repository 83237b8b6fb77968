"""Platform components: persisters, indexability, synchronization and wiring."""
