"""MySQL, PostgreSQL, SQLite and SQL Server dialects, each registered when its module is imported."""