"""LP Market - Pipeline (resolver, aggregator, sync, sweep, scheduling)"""
