"""
AffiMark Product Verifier

Checks whether a product is worth promoting as an affiliate:
1. Normalizes the product URL and scrapes the product page
2. Scores product, merchant and economics, and issues a verdict
3. Routes the user to the product or to ranked alternatives
4. Generates a promotion playbook and monitors watched products
"""

__version__ = "1.0.0"
