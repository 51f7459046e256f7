from clidrive.cli import main

raise SystemExit(main())
