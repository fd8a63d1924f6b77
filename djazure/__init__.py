"""
djazure: provisions the Azure resources a Django web app needs (resource group,
storage, PostgreSQL flexible server, Key Vault, Application Insights, App Service)
through the Azure CLI, and writes the deployment artifacts and a summary.
"""

__version__ = "0.1.0"
