# blogcms: Services (pure domain functions, no I/O)
