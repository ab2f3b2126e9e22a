from k8s_app.app.main import main

main()
