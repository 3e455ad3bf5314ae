"""Domain packages - one per business capability (router, service, repository, schemas)"""
