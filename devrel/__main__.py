from devrel.cli.app import main

main()
