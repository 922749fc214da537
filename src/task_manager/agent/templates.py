"""Static source templates written by the agent's code generators."""


def app_navigator() -> str:
    return """import React from 'react';
import { NavigationContainer } from '@react-navigation/native';
import { createStackNavigator } from '@react-navigation/stack';
import { LoginScreen } from '../screens/auth/LoginScreen';
import { RegisterScreen } from '../screens/auth/RegisterScreen';
import { HomeScreen } from '../screens/HomeScreen';

export type RootStackParamList = {
  Login: undefined;
  Register: undefined;
  Home: undefined;
};

const Stack = createStackNavigator<RootStackParamList>();

export const AppNavigator: React.FC = () => {
  return (
    <NavigationContainer>
      <Stack.Navigator initialRouteName="Login">
        <Stack.Screen name="Login" component={LoginScreen} options={{ title: 'Sign In' }} />
        <Stack.Screen name="Register" component={RegisterScreen} options={{ title: 'Create Account' }} />
        <Stack.Screen name="Home" component={HomeScreen} />
      </Stack.Navigator>
    </NavigationContainer>
  );
};
"""


def app_entry_with_navigation() -> str:
    return """import React from 'react';
import { StatusBar } from 'expo-status-bar';
import { AppNavigator } from './src/navigation/AppNavigator';
import { AuthProvider } from './src/contexts/AuthContext';

export default function App() {
  return (
    <AuthProvider>
      <AppNavigator />
      <StatusBar style="auto" />
    </AuthProvider>
  );
}
"""


def auth_service() -> str:
    return """import auth, { FirebaseAuthTypes } from '@react-native-firebase/auth';

export interface User {
  uid: string;
  email: string | null;
  displayName: string | null;
}

const toUser = (user: FirebaseAuthTypes.User): User => ({
  uid: user.uid,
  email: user.email,
  displayName: user.displayName,
});

export class AuthService {
  static async signUp(email: string, password: string): Promise<User> {
    const credential = await auth().createUserWithEmailAndPassword(email, password);
    return toUser(credential.user);
  }

  static async signIn(email: string, password: string): Promise<User> {
    const credential = await auth().signInWithEmailAndPassword(email, password);
    return toUser(credential.user);
  }

  static async signOut(): Promise<void> {
    await auth().signOut();
  }

  static getCurrentUser(): User | null {
    const user = auth().currentUser;
    return user ? toUser(user) : null;
  }

  static async resetPassword(email: string): Promise<void> {
    await auth().sendPasswordResetEmail(email);
  }
}
"""


def auth_context() -> str:
    return """import React, { createContext, useContext, useEffect, useState } from 'react';
import auth from '@react-native-firebase/auth';
import { AuthService, User } from '../services/auth';

interface AuthContextValue {
  user: User | null;
  loading: boolean;
  signIn: (email: string, password: string) => Promise<void>;
  signUp: (email: string, password: string) => Promise<void>;
  signOut: () => Promise<void>;
}

const AuthContext = createContext<AuthContextValue | undefined>(undefined);

export const useAuth = (): AuthContextValue => {
  const context = useContext(AuthContext);
  if (context === undefined) {
    throw new Error('useAuth must be used within an AuthProvider');
  }
  return context;
};

export const AuthProvider: React.FC<{ children: React.ReactNode }> = ({ children }) => {
  const [user, setUser] = useState<User | null>(null);
  const [loading, setLoading] = useState(true);

  useEffect(() => {
    return auth().onAuthStateChanged(() => {
      setUser(AuthService.getCurrentUser());
      setLoading(false);
    });
  }, []);

  const value: AuthContextValue = {
    user,
    loading,
    signIn: async (email, password) => { setUser(await AuthService.signIn(email, password)); },
    signUp: async (email, password) => { setUser(await AuthService.signUp(email, password)); },
    signOut: async () => { await AuthService.signOut(); setUser(null); },
  };

  return <AuthContext.Provider value={value}>{children}</AuthContext.Provider>;
};
"""


def _auth_screen(name: str, title: str, action: str, call: str) -> str:
    return f"""import React, {{ useState }} from 'react';
import {{ Alert, Button, StyleSheet, Text, TextInput, View }} from 'react-native';
import {{ useAuth }} from '../../contexts/AuthContext';

export const {name}: React.FC = () => {{
  const {{ {call} }} = useAuth();
  const [email, setEmail] = useState('');
  const [password, setPassword] = useState('');

  const submit = async () => {{
    if (!email.includes('@') || password.length < 6) {{
      Alert.alert('Error', 'Enter a valid email and a password of at least 6 characters');
      return;
    }}
    try {{
      await {call}(email, password);
    }} catch (error: any) {{
      Alert.alert('Error', error.message);
    }}
  }};

  return (
    <View style={{styles.container}}>
      <Text style={{styles.title}}>{title}</Text>
      <TextInput style={{styles.input}} placeholder="Email" value={{email}}
        onChangeText={{setEmail}} autoCapitalize="none" keyboardType="email-address" />
      <TextInput style={{styles.input}} placeholder="Password" value={{password}}
        onChangeText={{setPassword}} secureTextEntry />
      <Button title="{action}" onPress={{submit}} />
    </View>
  );
}};

const styles = StyleSheet.create({{
  container: {{ flex: 1, padding: 24, justifyContent: 'center' }},
  title: {{ fontSize: 32, fontWeight: 'bold', textAlign: 'center', marginBottom: 24 }},
  input: {{ borderWidth: 1, borderColor: '#ddd', borderRadius: 8, padding: 12, marginBottom: 12 }},
}});
"""


def login_screen() -> str:
    return _auth_screen("LoginScreen", "Welcome Back", "Sign In", "signIn")


def register_screen() -> str:
    return _auth_screen("RegisterScreen", "Create Account", "Sign Up", "signUp")


def directory_index(directory: str) -> str:
    return f"// {directory} exports\n// Auto-generated by the task manager agent\n"


def backend_config() -> str:
    return """import '@react-native-firebase/app';
import firestore from '@react-native-firebase/firestore';
import auth from '@react-native-firebase/auth';

export class FirebaseService {
  static getFirestore() {
    return firestore();
  }

  static getAuth() {
    return auth();
  }
}
"""
