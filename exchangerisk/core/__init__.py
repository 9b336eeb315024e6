"""Record model, codec, store, aggregation and workflow for ExchangeRisk."""
