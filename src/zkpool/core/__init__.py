"""Pool state components: accumulator, root history, guards, ledger."""
