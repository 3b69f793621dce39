from flakeaudit.cli import main

raise SystemExit(main())
