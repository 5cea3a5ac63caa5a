# Fundraising Service Contracts

"""
Fundraising Service Contract Module

This module contains:
- data_contract.py: test constants, request builders and test data factories
"""
