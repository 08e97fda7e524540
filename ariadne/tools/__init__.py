"""Agent tools for shell, files, HTTP, search and stored results, with a registry and a retrying executor."""