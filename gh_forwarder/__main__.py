from gh_forwarder.main import main

main()
