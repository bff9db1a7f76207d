from src.dockchat.app.dockchat_app import main


if __name__ == "__main__":
    """
    Main entry point for the DockChat console.
    """
    main()
