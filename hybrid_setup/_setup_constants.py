"""Fixed names, paths and limits used across the setup phases."""

from __future__ import annotations

DEFAULT_NAMESPACE = "apigee"
DEFAULT_API_ENDPOINT = "https://apigee.googleapis.com"
DEFAULT_SERVICE_ACCOUNT_NAME = "apigee-all-sa"

# Placeholder directory names shipped in the overlay templates.
DEFAULT_INSTANCE_DIR_NAME = "instance1"
DEFAULT_ENV_DIR_NAME = "test"
DEFAULT_ENVGROUP_DIR_NAME = "test-envgroup"

SERVICE_ACCOUNT_OUTPUT_DIR_NAME = "service-accounts"
CREATE_SERVICE_ACCOUNT_HELPER = ("tools", "create-service-account.sh")
CERTIFICATE_TEMPLATE = ("templates", "certificate-org-envgroup.yaml")

APPLY_SETTERS_IMAGE = "gcr.io/kpt-fn/apply-setters:v0.2.0"

OPENSHIFT_API_GROUP = "security.openshift.io"
OPENSHIFT_SCC_RESOURCE = "securitycontextconstraints.security.openshift.io"

CERT_MANAGER_NAMESPACE = "cert-manager"
CERT_MANAGER_ISSUER_CRD = "clusterissuers.cert-manager.io"

CONTROLLER_DEPLOYMENTS = (
    "deployment/apigee-controller-manager",
    "deployment/apigee-ingressgateway-manager",
)
CONTROLLER_WAIT_TIMEOUT = "2m"
RESOURCE_WAIT_TIMEOUT = "15m"

SECRET_PAYLOAD_KEY = "client_secret.json"

REQUIRED_COMMANDS = ("gcloud", "kubectl", "kpt")
