"""Concrete datasources: cloud metadata services, config drives, agent files, local files and URLs."""