"""AgriStore gateway: Filecoin storage, wallet auth and crop heuristics over HTTP."""
