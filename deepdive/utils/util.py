import os
from typing import Optional

debug = False

def init( d: bool ) -> None:
    """
    Initialize the debug flag for the utility module.

    Args:
        d: Boolean value to set the debug flag to
    """
    global debug
    debug = d

def get_file_as_string( path: str ) -> str:
    """
    Read a file and return its contents stripped of surrounding whitespace.

    Requires:
        - path is a valid file path

    Ensures:
        - Returns file contents without leading/trailing whitespace

    Args:
        path: The path to the file to read

    Returns:
        The file contents as a string
    """
    with open( path, "r", encoding="utf-8" ) as file:
        return file.read().strip()

def print_banner( msg: str, end: str = "\n\n", prepend_nl: bool = False ) -> None:
    """
    Print a message to console with decorative header/footer lines.

    Args:
        msg: The message to print in the banner
        end: The string to print after the banner (default: "\n\n")
        prepend_nl: Whether to print a newline before the banner (default: False)
    """
    if prepend_nl: print()

    bar_str = "-" * 120

    print( bar_str )
    print( "-", msg )
    print( bar_str, end=end )

def get_project_root() -> str:
    """
    Get the root directory path of the project.

    Ensures:
        - Returns DEEPDIVE_ROOT when set
        - Otherwise returns the directory that contains the deepdive package

    Returns:
        The absolute path to the project root directory
    """
    if debug:
        print( f"DEEPDIVE_ROOT [{os.getenv( 'DEEPDIVE_ROOT' )}]" )
        print( f"os.getcwd() [{os.getcwd()}]" )

    if "DEEPDIVE_ROOT" in os.environ:
        return os.environ[ "DEEPDIVE_ROOT" ]

    return os.path.dirname( os.path.dirname( os.path.dirname( os.path.abspath( __file__ ) ) ) )

def get_api_key( key_name: str, project_root: Optional[ str ] = None ) -> Optional[ str ]:
    """
    Get an API key from the configuration directory.

    Requires:
        - key_name is a non-empty string

    Ensures:
        - Returns the API key as a string if found
        - Returns None if the key file doesn't exist

    Args:
        key_name: The name of the API key file
        project_root: The project root directory (default: result of get_project_root())

    Returns:
        The API key as a string, or None if not found
    """
    if project_root is None:
        project_root = get_project_root()

    path = project_root + f"/conf/keys/{key_name}"
    if debug: print( f"Fetching [{key_name}] from [{path}]..." )

    if not os.path.exists( path ):
        if debug: print_banner( f"Key [{key_name}] not found at [{path}]" )
        return None

    return get_file_as_string( path )

def truncate_string( string: str, max_len: int = 64 ) -> str:
    """
    Truncate a string if it exceeds a maximum length and add ellipsis.

    Args:
        string: The string to truncate if needed
        max_len: Maximum length before truncation (default: 64)

    Returns:
        The original or truncated string
    """
    if len( string ) > max_len:
        string = string[ :max_len ] + "..."

    return string

def quick_smoke_test():
    """Quick smoke test for util helpers."""
    print_banner( "Util Smoke Test", prepend_nl=True )

    assert truncate_string( "abc", max_len=5 ) == "abc"
    assert truncate_string( "abcdefgh", max_len=3 ) == "abc..."
    print( "✓ truncate_string works" )

    root = get_project_root()
    assert os.path.isdir( root )
    print( f"✓ get_project_root: {root}" )

    assert get_api_key( "definitely-missing-key", project_root="/nonexistent" ) is None
    print( "✓ get_api_key returns None for missing key file" )


if __name__ == "__main__":
    quick_smoke_test()
