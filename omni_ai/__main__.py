from omni_ai.cli.main import main

main()
