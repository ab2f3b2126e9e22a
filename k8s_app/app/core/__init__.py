SERVICE_NAME = "k8s-app"
