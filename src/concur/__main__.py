from concur.cli import main

main()
